"""Domain errors raised by services and converted to JSON error responses.

Each error carries the HTTP status code it maps to, so the API layer can turn
any of them into ``{"error": message}`` without knowing the concrete type.
"""


class LunaDineError(Exception):
    """Base class for errors that map onto an HTTP error response."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(LunaDineError):
    """A required field is missing or holds an invalid value."""

    status_code = 400


class InvalidMenuItemError(InvalidRequestError):
    """An order line references a branch menu item that does not exist."""

    def __init__(self, branch_menu_item_id: int | None = None) -> None:
        super().__init__("Invalid menu item")
        self.branch_menu_item_id = branch_menu_item_id


class NotFoundError(LunaDineError):
    """The requested branch, order, table or promo code does not exist."""

    status_code = 404


class MethodNotAllowedError(LunaDineError):
    """The endpoint does not accept the HTTP method used."""

    status_code = 405

    def __init__(self, message: str = "Method not allowed") -> None:
        super().__init__(message)


class OrderUidExhaustedError(LunaDineError):
    """No unused public order identifier could be generated."""

    status_code = 500
