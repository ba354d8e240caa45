class ServiceError(Exception):
    """
    Base class for failures surfaced to the caller of the pipeline.

    client_error:
      True when the event (or the configuration it meets) is at fault and a
      retry without changes cannot succeed. False for upstream failures.
    """
    error_name = "ServiceError"
    message_prefix = "Service error"
    client_error = True

    def __init__(self, detail: str):
        super().__init__(f"{self.message_prefix}: {detail}")
        self.detail = detail


class SelectorError(ServiceError):
    error_name = "SelectorError"
    message_prefix = "Error processing JSON path"


class PayloadParseError(ServiceError):
    error_name = "PayloadError"
    message_prefix = "Failed processing payload"


class MissingValueError(PayloadParseError):
    """A selected value has no native representation for its target type and was not parsed."""


class ConversionError(ServiceError):
    error_name = "ConversionError"
    message_prefix = "Failed converted expected type"


class TargetError(ServiceError):
    error_name = "TargetError"
    message_prefix = "Error connecting target"
    client_error = False
