"""
Custom exception classes for the KPI dashboard engine.
Status codes let the API layer tell caller mistakes (4xx) from system errors (5xx).
"""

class AppException(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

class InvalidInputError(AppException):
    """Raised when a dataset or parameter is structurally unusable. Fatal to the call."""
    def __init__(self, message: str = "The input data is invalid."):
        super().__init__(message, status_code=400)

class UnsupportedCalculationError(AppException):
    """Raised when a KPI names an operator outside sum/avg/count/max/min."""
    def __init__(self, calculation: str):
        self.calculation = calculation
        super().__init__(f"Unknown calculation type: {calculation}", status_code=400)

class IncompleteChartDefinitionError(AppException):
    """Raised when a chart definition has no measures or no dimensions."""
    def __init__(self, message: str = "Chart definition needs at least one measure and one dimension."):
        super().__init__(message, status_code=400)

class DatasetNotFoundError(AppException):
    """Raised when a dataset id is not present in the store."""
    def __init__(self, dataset_id: str):
        self.dataset_id = dataset_id
        super().__init__(f"Dataset '{dataset_id}' not found.", status_code=404)

class VisualizationError(AppException):
    """Raised when a chart cannot be rendered as a Plotly figure."""
    def __init__(self, message: str = "Failed to generate visualization."):
        super().__init__(message, status_code=500)
