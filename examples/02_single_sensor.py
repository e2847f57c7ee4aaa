import matplotlib.pyplot as plt
import numpy as np

from nested_fitting import models
from nested_fitting.viz import plot_fit

rng = np.random.default_rng(3)
t = np.linspace(0.0, 2400.0, 60)
y = models.exponential_func(t, dT_inf=8.0, tau=420.0) + rng.normal(0.0, 0.2, size=t.size)

model = models.exponential()
fit = model.fit(t, y)
print(fit.summary())

# the rise and time constant share one covariance, so derived quantities
# carry correlated uncertainty
slope0 = fit["dT_inf"].u / fit["tau"].u
print("initial slope [K/s]:", slope0)

# a flat trace gives the fit nothing to identify: the result is a value, not an error
flat_fit = models.erfc_convection().fit(t, np.zeros_like(t))
print(flat_fit)

fig, ax = plot_fit(fit=fit, band=True, show_params=True)
ax.set_xlabel("elapsed time [s]")
ax.set_ylabel("temperature rise")
ax.legend()
plt.show()
