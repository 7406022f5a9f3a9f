from typing import Any, Dict, List


class InventoryError(Exception):
    """Base for every failure the service reports to clients."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(InventoryError):
    """One or more request fields are missing or malformed."""

    status_code = 400

    def __init__(self, messages: List[str]):
        super().__init__("; ".join(messages))
        self.messages = list(messages)

    def to_payload(self) -> Dict[str, Any]:
        return {"errors": self.messages}


class InvalidQuantityError(ValidationError):
    """A stock movement quantity that is not a positive whole number."""

    def __init__(self, message: str = "Invalid quantity!"):
        super().__init__([message])

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.messages[0]}


class BusinessRuleError(InventoryError):
    status_code = 400


class NotFoundError(InventoryError):
    status_code = 404


class InternalError(InventoryError):
    status_code = 500
