"""
Example: PRM on synthetic NIR-like spectra
==========================================
Builds spectra as mixtures of three Gaussian absorption bands, regresses
the concentration of the first constituent, and contaminates a handful
of calibration samples (wrong reference values and a baseline-shifted
spectrum).  PRM is compared with plain SIMPLS on a clean test set.

Expected output (approximate):
  - PRM flags the contaminated samples with combined weight < 0.1
  - PRM test RMSE is several times lower than SIMPLS test RMSE
"""

import numpy as np
import matplotlib.pyplot as plt
from sklearn.metrics import mean_squared_error

# If running from the repo root (not pip-installed), uncomment:
# import sys; sys.path.insert(0, '..')

from prm import PRMRegressor, SIMPLSRegressor

# ------------------------------------------------------------------
# 1.  Simulate spectra
# ------------------------------------------------------------------
rng = np.random.RandomState(42)
wavelengths = np.linspace(1000, 2500, 200)
bands = np.vstack([
    np.exp(-0.5 * ((wavelengths - centre) / width) ** 2)
    for centre, width in [(1450, 60), (1940, 80), (2200, 50)]
])


def simulate(n):
    conc = rng.uniform(0.0, 1.0, size=(n, 3))
    spectra = conc @ bands + rng.randn(n, len(wavelengths)) * 0.005
    return spectra, conc[:, 0]


X_train, y_train = simulate(120)
X_test, y_test = simulate(200)

# ------------------------------------------------------------------
# 2.  Contaminate the calibration set
# ------------------------------------------------------------------
bad_reference = [3, 17, 58, 90]
y_train[bad_reference] += 2.5
X_train[101] += 0.8                     # baseline shift

# ------------------------------------------------------------------
# 3.  Fit both models
# ------------------------------------------------------------------
prm = PRMRegressor(n_components=3, preprocessing='center', verbose=True)
prm.fit(X_train, y_train)

simpls = SIMPLSRegressor(n_components=3)
simpls.fit(X_train - X_train.mean(axis=0), y_train - y_train.mean())

# ------------------------------------------------------------------
# 4.  Compare on clean test data
# ------------------------------------------------------------------
rmse_prm = np.sqrt(mean_squared_error(y_test, prm.predict(X_test)))
y_simpls = (simpls.predict(X_test - X_train.mean(axis=0))
            + y_train.mean())
rmse_simpls = np.sqrt(mean_squared_error(y_test, y_simpls))

print(f"\nTest RMSE (PRM)    : {rmse_prm:.4f}")
print(f"Test RMSE (SIMPLS) : {rmse_simpls:.4f}")

weights = prm.get_sample_weights()
flagged = weights.index[weights['combined_weight'] < 0.1].tolist()
print(f"Flagged samples    : {flagged}")

prm.plot_weights(threshold=0.1)
plt.show()
