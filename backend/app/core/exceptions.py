"""Custom exception classes for the application.

Every domain error carries the HTTP status and machine-readable code the
API layer reports, so route handlers can let them propagate.
"""


class TradelineException(Exception):
    """Base exception for all Tradeline errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Validation errors (4xx, raised before anything is written)
# ---------------------------------------------------------------------------

class ValidationError(TradelineException):
    """Raised when input is well-formed but violates a business rule."""

    status_code = 400
    code = "validation_error"


class DuplicateSlugError(ValidationError):
    """Raised when a slug is already taken."""

    status_code = 409
    code = "duplicate_slug"

    def __init__(self, resource: str, slug: str):
        self.slug = slug
        super().__init__(f"{resource} slug '{slug}' already exists")


class DuplicateSkuError(ValidationError):
    """Raised when a product SKU is already taken."""

    status_code = 409
    code = "duplicate_sku"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Product SKU '{sku}' already exists")


class DuplicateEmailError(ValidationError):
    """Raised when registering an email that already has an account."""

    status_code = 409
    code = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"An account already exists for '{email}'")


class SelfParentError(ValidationError):
    """Raised when a category is given itself as parent."""

    code = "self_parent"

    def __init__(self, category_id: str):
        super().__init__(f"Category '{category_id}' cannot be its own parent")


class CategoryCycleError(ValidationError):
    """Raised when the chosen parent is a descendant of the category."""

    code = "category_cycle"

    def __init__(self, category_id: str, parent_id: str):
        super().__init__(
            f"Category '{parent_id}' is a descendant of '{category_id}' and cannot be its parent"
        )


class MaxDepthExceededError(ValidationError):
    """Raised when a category would be placed below the deepest allowed level."""

    code = "max_depth_exceeded"

    def __init__(self, max_level: int):
        self.max_level = max_level
        super().__init__(f"Maximum category depth exceeded (deepest level is {max_level})")


class InvalidPriceError(ValidationError):
    """Raised when product pricing is inconsistent."""

    code = "invalid_price"


# ---------------------------------------------------------------------------
# Not-found errors
# ---------------------------------------------------------------------------

class NotFoundError(TradelineException):
    """Raised when a requested resource is not found."""

    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = str(identifier)
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class ParentNotFoundError(NotFoundError):
    """Raised when a category's designated parent does not exist."""

    code = "parent_not_found"

    def __init__(self, parent_id: str):
        super().__init__("Parent category", parent_id)


class CategoryNotFoundError(NotFoundError):
    """Raised when a product references a category that does not exist."""

    code = "category_not_found"

    def __init__(self, category_id: str):
        super().__init__("Category", category_id)


# ---------------------------------------------------------------------------
# Auth and delivery errors
# ---------------------------------------------------------------------------

class AuthenticationError(TradelineException):
    """Raised when credentials are missing, invalid or the account is locked."""

    status_code = 401
    code = "authentication_failed"


class PermissionDeniedError(TradelineException):
    """Raised when the caller lacks the permission an operation requires."""

    status_code = 403
    code = "permission_denied"

    def __init__(self, permission: str):
        self.permission = permission
        super().__init__(f"Missing permission '{permission}'")


class EmailDeliveryError(TradelineException):
    """Raised when an email that must be delivered could not be sent."""

    status_code = 502
    code = "email_delivery_failed"
