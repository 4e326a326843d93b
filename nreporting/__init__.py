from nreporting.measurement import Measurement, Quantity
from nreporting.regression import NULL, LineFit, RegressionLine, fit_line

__all__ = ["NULL", "LineFit", "Measurement", "Quantity", "RegressionLine", "fit_line"]
