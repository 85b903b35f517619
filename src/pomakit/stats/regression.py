"""
Penalized logistic regression of a two-level group on metabolite features.

Lasso, ridge and elastic-net fits follow the glmnet parameterisation: the
penalty ``lambda`` is swept along a log-spaced path, every value is scored by
stratified k-fold cross-validated binomial deviance, and the model at the
lambda with the smallest mean deviance is reported.

glmnet minimises

    -loglik / n + lambda * (alpha * |b|_1 + (1 - alpha) / 2 * |b|_2^2)

which scikit-learn's LogisticRegression matches with ``C = 1 / (lambda * n)``
(``l1_ratio`` = alpha). Features are standardized inside every fit, so
coefficients are on the standardized scale.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pomakit._validators import _group_labels, _resolve_method, _target_table, _two_levels
from pomakit.core.biomatrix import BioMatrix
from pomakit.errors import InvalidArgumentError
from pomakit.viz.core import Figure
from pomakit.viz.differential import plot_coefficient_path, plot_cv_curve

__all__ = ["RegressionMethod", "LassoResult", "lasso", "lambda_path"]

logger = logging.getLogger(__name__)


class RegressionMethod(Enum):
    """Penalty applied to the logistic regression coefficients."""

    LASSO = "lasso"
    RIDGE = "ridge"
    ELASTICNET = "elasticnet"


@dataclass
class LassoResult:
    """Penalized regression output.

    Attributes:
        coefficients: Non-zero coefficients at lambda_min (columns feature,
            coefficient), largest magnitude first
        coefficient_path: Long table (lambda, feature, coefficient) of every
            fit along the path
        cv_results: Cross-validated deviance per lambda (lambda,
            mean_deviance, sd_deviance)
        lambda_min: Penalty with the smallest mean deviance
        coefficient_plot: Coefficient path figure
        cv_plot: Cross-validation curve figure
        confusion_matrix: Held-out confusion matrix (rows observed, columns
            predicted); None without a test split
        accuracy: Held-out accuracy; None without a test split
    """

    coefficients: pd.DataFrame
    coefficient_path: pd.DataFrame
    cv_results: pd.DataFrame
    lambda_min: float
    coefficient_plot: Figure
    cv_plot: Figure
    confusion_matrix: Optional[pd.DataFrame] = None
    accuracy: Optional[float] = None


def _mixing(method: RegressionMethod, alpha: float) -> float:
    """Share of L1 in the penalty (glmnet's alpha)."""
    if method is RegressionMethod.LASSO:
        return 1.0
    if method is RegressionMethod.RIDGE:
        return 0.0
    return alpha


def lambda_path(
    X: NDArray[np.float64],
    y: NDArray[np.int_],
    l1_ratio: float = 1.0,
    n_lambda: int = 50,
) -> NDArray[np.float64]:
    """
    Decreasing log-spaced penalty path.

    Starts at the smallest lambda that zeroes every coefficient of the
    standardized problem; ridge (l1_ratio 0) uses l1_ratio 0.001 for that
    bound. The path spans two decades when features outnumber samples, four
    otherwise.
    """
    from sklearn.preprocessing import StandardScaler

    n_samples, n_features = X.shape
    Xs = StandardScaler().fit_transform(X)
    gradient = np.abs(Xs.T @ (y - y.mean())) / n_samples
    lambda_max = float(gradient.max()) / max(l1_ratio, 1e-3)
    if lambda_max <= 0:
        raise InvalidArgumentError("Features carry no information about the groups")

    min_ratio = 1e-2 if n_samples < n_features else 1e-4
    return np.geomspace(lambda_max, lambda_max * min_ratio, n_lambda)


def _penalty_kwargs(method: RegressionMethod, l1_ratio: float) -> dict:
    """
    Penalty arguments of LogisticRegression.

    scikit-learn 1.8 selects the penalty through l1_ratio alone and
    deprecates the penalty argument.
    """
    import sklearn

    major, minor = (int(part) for part in sklearn.__version__.split(".")[:2])
    if (major, minor) >= (1, 8):
        return {"l1_ratio": l1_ratio}
    if method is RegressionMethod.LASSO:
        return {"penalty": "l1"}
    if method is RegressionMethod.RIDGE:
        return {"penalty": "l2"}
    return {"penalty": "elasticnet", "l1_ratio": l1_ratio}


def _classifier(lam: float, n_train: int, method: RegressionMethod, l1_ratio: float, seed: int):
    from sklearn.linear_model import LogisticRegression
    from sklearn.pipeline import make_pipeline
    from sklearn.preprocessing import StandardScaler

    solver = {
        RegressionMethod.LASSO: "liblinear",
        RegressionMethod.RIDGE: "lbfgs",
        RegressionMethod.ELASTICNET: "saga",
    }[method]
    model = LogisticRegression(
        C=1.0 / (lam * n_train),
        solver=solver,
        max_iter=10000,
        random_state=seed,
        **_penalty_kwargs(method, l1_ratio),
    )
    return make_pipeline(StandardScaler(), model)


def _coefficients(fitted) -> NDArray[np.float64]:
    return fitted[-1].coef_.ravel()


def lasso(
    data: pd.DataFrame | BioMatrix,
    method: Optional[str] = None,
    alpha: float = 0.5,
    ntest: Optional[float] = None,
    nfolds: int = 10,
    lambdas: Optional[Sequence[float]] = None,
    n_lambda: int = 50,
    seed: int = 123,
) -> LassoResult:
    """
    Lasso, ridge or elastic-net logistic regression with cross-validation.

    Args:
        data: Table whose first column is the subject ID and second column a
            two-level group factor, followed by numeric features; or a
            BioMatrix whose first metadata column is the group
        method: "lasso", "ridge" or "elasticnet". If None, warns and uses
            "lasso".
        alpha: Elastic-net mixing parameter in (0, 1); ignored by lasso and
            ridge
        ntest: Percentage of samples held out (stratified) to evaluate the
            selected model; None fits on every sample
        nfolds: Number of cross-validation folds
        lambdas: Penalty grid; None computes a path from the data
        n_lambda: Length of the computed path
        seed: Seed for the test split, the folds and the solvers

    Returns:
        LassoResult

    Raises:
        MissingArgumentError: If data is None
        InvalidArgumentError: If an option is out of range, data have missing
            values or a group is too small for nfolds
        GroupMismatchError: If the group factor does not have exactly two levels
    """
    from sklearn.exceptions import ConvergenceWarning
    from sklearn.metrics import accuracy_score, confusion_matrix, log_loss
    from sklearn.model_selection import StratifiedKFold, train_test_split

    table = _target_table(data)
    resolved = _resolve_method(method, RegressionMethod, RegressionMethod.LASSO)

    if not 0 < alpha < 1:
        raise InvalidArgumentError(f"alpha must be in (0, 1), got {alpha}")
    if ntest is not None and not 0 < ntest < 100:
        raise InvalidArgumentError(f"ntest must be a percentage in (0, 100), got {ntest}")
    if nfolds < 3:
        raise InvalidArgumentError(f"nfolds must be >= 3, got {nfolds}")
    if lambdas is None and n_lambda < 2:
        raise InvalidArgumentError(f"n_lambda must be >= 2, got {n_lambda}")

    class1, class2 = _two_levels(table["Group"])
    table = table[table["Group"].notna()]

    features = table.drop(columns=["ID", "Group"]).apply(pd.to_numeric, errors="coerce")
    feature_names = [str(c) for c in features.columns]
    X = features.to_numpy(dtype=float)
    y = (_group_labels(table["Group"]) == class2).astype(int).to_numpy()

    if np.isnan(X).any():
        raise InvalidArgumentError("data have missing values; impute them first")

    if ntest is not None:
        X_train, X_test, y_train, y_test = train_test_split(
            X, y, test_size=ntest / 100, stratify=y, random_state=seed
        )
    else:
        X_train, X_test, y_train, y_test = X, None, y, None

    smallest_group = int(np.bincount(y_train, minlength=2).min())
    if smallest_group < nfolds:
        raise InvalidArgumentError(
            f"nfolds ({nfolds}) is larger than the smallest group in the "
            f"training data ({smallest_group} samples)"
        )

    l1_ratio = _mixing(resolved, alpha)
    if lambdas is None:
        grid = lambda_path(X_train, y_train, l1_ratio=l1_ratio, n_lambda=n_lambda)
    else:
        grid = np.sort(np.asarray(lambdas, dtype=float))[::-1]
        if len(grid) == 0 or np.any(grid <= 0):
            raise InvalidArgumentError("lambdas must be a non-empty sequence of positive values")

    logger.info(
        "Fitting %s logistic regression: %s vs %s, %d samples, %d features, "
        "%d lambdas, %d folds",
        resolved.value, class1, class2, len(y_train), X.shape[1], len(grid), nfolds,
    )

    cv = StratifiedKFold(n_splits=nfolds, shuffle=True, random_state=seed)
    folds = list(cv.split(X_train, y_train))

    deviance = np.empty((len(grid), nfolds))
    path_rows = []
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        for i, lam in enumerate(grid):
            for k, (train_idx, val_idx) in enumerate(folds):
                model = _classifier(lam, len(train_idx), resolved, l1_ratio, seed)
                model.fit(X_train[train_idx], y_train[train_idx])
                probs = model.predict_proba(X_train[val_idx])[:, 1]
                # binomial deviance per observation
                deviance[i, k] = 2 * log_loss(y_train[val_idx], probs, labels=[0, 1])

            model = _classifier(lam, len(y_train), resolved, l1_ratio, seed)
            model.fit(X_train, y_train)
            for name, coef in zip(feature_names, _coefficients(model)):
                path_rows.append({"lambda": lam, "feature": name, "coefficient": coef})

        cv_results = pd.DataFrame({
            "lambda": grid,
            "mean_deviance": deviance.mean(axis=1),
            "sd_deviance": deviance.std(axis=1, ddof=1),
        })
        lambda_min = float(grid[int(np.argmin(cv_results["mean_deviance"].to_numpy()))])

        final = _classifier(lambda_min, len(y_train), resolved, l1_ratio, seed)
        final.fit(X_train, y_train)

    coefficient_path = pd.DataFrame(path_rows)
    coefs = _coefficients(final)
    coefficients = pd.DataFrame({"feature": feature_names, "coefficient": coefs})
    coefficients = coefficients[coefficients["coefficient"] != 0]
    coefficients = coefficients.reindex(
        coefficients["coefficient"].abs().sort_values(ascending=False, kind="mergesort").index
    ).reset_index(drop=True)

    logger.info(
        "lambda_min=%.4g, %d of %d features with non-zero coefficients",
        lambda_min, len(coefficients), len(feature_names),
    )

    matrix = None
    accuracy = None
    if X_test is not None:
        predicted = final.predict(X_test)
        labels = [class1, class2]
        matrix = pd.DataFrame(
            confusion_matrix(y_test, predicted, labels=[0, 1]),
            index=pd.Index(labels, name="observed"),
            columns=pd.Index(labels, name="predicted"),
        )
        accuracy = float(accuracy_score(y_test, predicted))
        logger.info("Held-out accuracy: %.3f on %d samples", accuracy, len(y_test))

    title = {
        RegressionMethod.LASSO: "Lasso",
        RegressionMethod.RIDGE: "Ridge",
        RegressionMethod.ELASTICNET: "Elastic net",
    }[resolved]

    return LassoResult(
        coefficients=coefficients,
        coefficient_path=coefficient_path,
        cv_results=cv_results,
        lambda_min=lambda_min,
        coefficient_plot=plot_coefficient_path(
            coefficient_path, lambda_min, title=f"{title} coefficient path"
        ),
        cv_plot=plot_cv_curve(
            cv_results, lambda_min, title=f"{title} cross-validated deviance"
        ),
        confusion_matrix=matrix,
        accuracy=accuracy,
    )
