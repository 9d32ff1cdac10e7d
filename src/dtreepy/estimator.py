"""
dtreepy.estimator
=================

scikit-learn style wrappers for batch prediction with an existing tree.

The trees themselves are built incrementally with
:class:`~dtreepy.tree.DecisionTree` or read with
:func:`~dtreepy.parser.parse_tree`; :meth:`fit` only validates the wrapped
tree and prepares it for (concurrent) read-only use.
"""

from __future__ import annotations

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin, RegressorMixin
from sklearn.exceptions import NotFittedError

from .attributes import AttributeType
from .execute import DEFAULT_WEIGHT, Prediction
from .printer import DescribeMode
from .rules import RuleMode
from .tree import DecisionTree


class _TreeEstimator(BaseEstimator):
    """Shared plumbing of :class:`TreeClassifier` and :class:`TreeRegressor`."""

    _nominal_target: bool = True

    def __init__(self, tree: DecisionTree | None = None, *, weight: float = DEFAULT_WEIGHT,
                 feature_names: list[str] | None = None):
        self.tree = tree
        self.weight = weight
        self.feature_names = feature_names

    # ------------------------------------------------------------------
    # Fitting
    # ------------------------------------------------------------------
    def fit(self, X=None, y=None):
        """
        Validate the wrapped tree and make it ready for prediction.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features), optional
            Only used to record ``n_features_in_``.
        y : ignored
            Present for API compatibility.

        Returns
        -------
        self
        """
        tree = self.tree
        if not isinstance(tree, DecisionTree):
            raise ValueError("tree must be a DecisionTree")
        if tree.is_nominal != self._nominal_target:
            kind = "nominal" if self._nominal_target else "metric"
            raise ValueError(f"{type(self).__name__} requires a tree with a {kind} target")
        if self.feature_names is not None:
            unknown = [n for n in self.feature_names if tree.attset.attribute_id(n) is None]
            if unknown:
                raise ValueError(f"unknown feature names: {unknown}")
        tree.total()
        tree.attribute_count()
        if X is not None:
            X = np.asarray(X, dtype=object)
            if X.ndim != 2:
                raise ValueError("X must be a 2-dimensional array")
            n_features = X.shape[1]
        elif self.feature_names is not None:
            n_features = len(self.feature_names)
        else:
            n_features = len(tree.attset)
        if self.feature_names is not None and n_features != len(self.feature_names):
            raise ValueError("feature_names length must match X.shape[1]")
        self.tree_ = tree
        self.n_features_in_ = n_features
        return self

    def _check_fitted(self) -> DecisionTree:
        if getattr(self, "tree_", None) is None:
            raise NotFittedError("Estimator not fitted. Call fit(...) first.")
        return self.tree_

    def _rows(self, X):
        X = np.asarray(X, dtype=object)
        if X.ndim != 2:
            raise ValueError("X must be a 2-dimensional array")
        if X.shape[1] != self.n_features_in_:
            raise ValueError(f"X has {X.shape[1]} features, expected {self.n_features_in_}")
        if self.feature_names is None:
            return list(X)
        return [dict(zip(self.feature_names, x)) for x in X]

    def _infer(self, X) -> list[Prediction]:
        tree = self._check_fitted()
        return [tree.infer(row, self.weight) for row in self._rows(X)]

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------
    def predict_confidence(self, X):
        """
        Return support and confidence of the prediction for each sample.

        Returns
        -------
        support : ndarray of shape (n_samples,)
        confidence : ndarray of shape (n_samples,)
            Relative frequency of the predicted class (classifier) or root
            mean squared error (regressor).
        """
        preds = self._infer(X)
        return (np.array([p.support for p in preds], dtype=float),
                np.array([self._confidence(p) for p in preds], dtype=float))

    def _confidence(self, p: Prediction) -> float:
        return p.confidence

    def export_rules(self, mode: RuleMode = RuleMode.SUPP | RuleMode.CONF,
                     max_width: int = 0) -> list[str]:
        """Return the rules of the tree, one string per leaf."""
        tree = self._check_fitted()
        return [rule.describe(mode, max_width) for rule in tree.rules()]

    def print_tree(self, mode: DescribeMode = DescribeMode(0), max_width: int = 72) -> None:
        """Print the tree to ``stdout``."""
        tree = self._check_fitted()
        print(tree.describe(mode=mode, max_width=max_width), end="")


class TreeClassifier(ClassifierMixin, _TreeEstimator):
    """
    Classifier backed by a decision tree with a nominal target.

    Parameters
    ----------
    tree : DecisionTree
        Tree to predict with.
    weight : float, default=DEFAULT_WEIGHT
        Weight of a test node's class distribution for attribute values that
        have no subtree.  Negative values treat such values as unknown.
    threshold : float or None, default=None
        Probability threshold for binary targets: the second class is
        predicted if and only if its relative frequency is at least
        ``threshold``.  ``None`` predicts the most frequent class.
    feature_names : list[str] or None, default=None
        Attribute names of the columns of ``X``.  If omitted, columns are
        taken in attribute id order.

    Attributes
    ----------
    tree_ : DecisionTree
        The validated tree.
    classes_ : ndarray of str
        Class names, in class id order.
    n_features_in_ : int
        Number of columns expected in ``X``.
    """

    _nominal_target = True

    def __init__(self, tree: DecisionTree | None = None, *, weight: float = DEFAULT_WEIGHT,
                 threshold: float | None = None, feature_names: list[str] | None = None):
        super().__init__(tree, weight=weight, feature_names=feature_names)
        self.threshold = threshold

    def fit(self, X=None, y=None):
        super().fit(X, y)
        self.classes_ = np.array(self.tree_.target.values, dtype=object)
        return self

    def _class_id(self, p: Prediction) -> int:
        if self.threshold is None or self.tree_.class_count != 2:
            return int(p.value)
        return 1 if p.distribution[1] >= self.threshold else 0

    def _confidence(self, p: Prediction) -> float:
        k = self._class_id(p)
        return min(1.0, max(0.0, float(p.distribution[k])))

    def predict(self, X):
        """
        Predict class names for the samples in ``X``.

        Missing values may be given as ``None`` or ``numpy.nan``.

        Returns
        -------
        ndarray of shape (n_samples,)
        """
        preds = self._infer(X)
        return self.classes_[[self._class_id(p) for p in preds]] if preds else self.classes_[:0]

    def predict_proba(self, X):
        """
        Return the normalised class distribution reached by each sample.

        Returns
        -------
        ndarray of shape (n_samples, n_classes)
        """
        preds = self._infer(X)
        if not preds:
            return np.zeros((0, len(self.classes_)))
        return np.vstack([p.distribution for p in preds])


class TreeRegressor(RegressorMixin, _TreeEstimator):
    """
    Regressor backed by a regression tree (metric target).

    Predictions for an integer-valued target are rounded to the nearest
    integer.

    Parameters
    ----------
    tree : DecisionTree
        Tree to predict with.
    weight : float, default=DEFAULT_WEIGHT
        Weight of a test node's statistics for attribute values that have no
        subtree.  Negative values treat such values as unknown.
    feature_names : list[str] or None, default=None
        Attribute names of the columns of ``X``.
    """

    _nominal_target = False

    def predict(self, X):
        """Predict target values for the samples in ``X``."""
        values = np.array([p.value for p in self._infer(X)], dtype=float)
        if self.tree_.target.type is AttributeType.INTEGER:
            values = np.floor(values + 0.5)
        return values
