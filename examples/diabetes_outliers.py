"""
Example: PRM with contaminated reference values
===============================================
Uses scikit-learn's bundled diabetes data, corrupts 5 % of the training
responses, and shows how the robust fit keeps its test R² while plain
SIMPLS degrades.
"""

import numpy as np
import pandas as pd
from sklearn.datasets import load_diabetes
from sklearn.model_selection import train_test_split

# If running from the repo root (not pip-installed), uncomment:
# import sys; sys.path.insert(0, '..')

from prm import PRMRegressor, SIMPLSRegressor

# ------------------------------------------------------------------
# 1.  Load data
# ------------------------------------------------------------------
data = load_diabetes()
X = pd.DataFrame(data.data, columns=data.feature_names)
y = pd.Series(data.target, name='progression')

X_train, X_test, y_train, y_test = train_test_split(
    X, y, test_size=0.25, random_state=42
)

# ------------------------------------------------------------------
# 2.  Corrupt 5 % of the training responses
# ------------------------------------------------------------------
rng = np.random.RandomState(0)
y_dirty = y_train.copy()
idx = rng.choice(len(y_dirty), size=len(y_dirty) // 20, replace=False)
y_dirty.iloc[idx] = y_dirty.iloc[idx] * 4 + 300

print(f"Training set: n={len(X_train)}, corrupted rows: {len(idx)}\n")

# ------------------------------------------------------------------
# 3.  Fit and compare
# ------------------------------------------------------------------
prm = PRMRegressor(n_components=4, preprocessing='standardize')
prm.fit(X_train, y_dirty)

Xc = X_train - X_train.mean()
simpls = SIMPLSRegressor(n_components=4).fit(Xc, y_dirty - y_dirty.mean())
simpls_pred = simpls.predict(X_test - X_train.mean()) + y_dirty.mean()

ss_tot = np.sum((y_test - y_test.mean()) ** 2)
r2_simpls = 1 - np.sum((y_test - simpls_pred) ** 2) / ss_tot

print(f"PRM test R²    : {prm.score(X_test, y_test):.3f}")
print(f"SIMPLS test R² : {r2_simpls:.3f}")
print(f"PRM iterations : {prm.n_iter_}")

weights = prm.get_sample_weights()
weights.index = X_train.index
print("\nLowest combined weights:")
print(weights.sort_values('combined_weight').head(10))
