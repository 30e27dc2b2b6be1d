"""Exception types raised by the simulation."""


class ConfigurationError(ValueError):
    """A simulation parameter is outside its valid range."""


class DegenerateScoresError(ArithmeticError):
    """A score column has zero (or non-finite) sample variance.

    Such a column cannot be z-scored, so PCA on the standardized matrix
    is undefined.  Raised instead of substituting a zero eigenvalue.
    """

    def __init__(self, columns):
        self.columns = list(columns)
        super().__init__(
            f"{len(self.columns)} score column(s) have zero variance: {self.columns[:10]}"
        )

    # Rebuild from the column list when crossing a process boundary.
    def __reduce__(self):
        return (type(self), (self.columns,))
