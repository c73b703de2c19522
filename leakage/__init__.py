"""
Carbon leakage time-series alignment and estimation engine.

Contains:
- model/: linear algebra kernel, OLS, p-values, descriptive statistics
- data/: period keys, series alignment, import aggregation, quality checks
- design/: frequency and feasibility gate
- engine/: model estimators and the analysis runner
"""

__version__ = "0.1.0"
