"""
Typed Exception Hierarchy for the Pricing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Order entry surfaces every failure somewhere specific: an inline field
message, an approval dialog, or a log line. Callers route by exception TYPE
and by the machine-readable ``code`` class attribute, never by parsing the
message text.

    try:
        session = service.set_quantity(session, index, qty)
    except InvalidQuantityError as e:
        show_field_error("quantity", e.code)   # Typed catch, structured data

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from PricingEngineError:

    PricingEngineError (base)
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- InvalidRateError
    |   +-- InvalidDiscountError
    |   +-- OverrideReasonTooShortError
    |   +-- MalformedContractEntryError
    |   +-- LineIndexError
    |
    +-- AuthorizationError
    |   +-- InvalidCredentialError
    |   +-- ApproverNotAuthorizedError
    |
    +-- NotFoundError
    |   +-- MaterialNotFoundError
    |
    +-- OverrideStateError
    |   +-- NoPendingOverrideError
    |   +-- OverrideMismatchError
    |
    +-- StaleCatalogError
    +-- UnsupportedContractVariantError
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Validation      | INVALID_QUANTITY              | Quantity missing or negative
                | INVALID_RATE                  | Rate negative or not a number
                | INVALID_DISCOUNT              | Discount outside 0..100
                | OVERRIDE_REASON_TOO_SHORT     | Override reason under minimum length
                | MALFORMED_CONTRACT_ENTRY      | Contract entry fields inconsistent
                | LINE_INDEX_OUT_OF_RANGE       | No order line at that position
----------------|-------------------------------|---------------------------------------
Authorization   | INVALID_CREDENTIAL            | Approver proof did not verify
                | APPROVER_NOT_AUTHORIZED       | Verified approver lacks override role
----------------|-------------------------------|---------------------------------------
Not found       | MATERIAL_NOT_FOUND            | Material id unknown to the source
----------------|-------------------------------|---------------------------------------
Override state  | NO_PENDING_OVERRIDE           | Decision submitted with nothing pending
                | OVERRIDE_MISMATCH             | Decision answers another request
----------------|-------------------------------|---------------------------------------
Other           | STALE_CATALOG                 | Catalog belongs to another counterparty
                | UNSUPPORTED_CONTRACT_VARIANT  | Variant dispatch fell through
                | IMMUTABILITY_VIOLATION        | Audit record UPDATE/DELETE attempted

===============================================================================
HANDLING PATTERNS
===============================================================================

ValidationError and AuthorizationError are always recoverable by re-entry of
correct input and never mutate the editing session. Override rejections are
returned as ``OverrideDecision(approved=False)`` by the authorizer; the
exceptions above describe WHY, and are carried in the decision.
"""


class PricingEngineError(Exception):
    """
    Base exception for all pricing engine errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "PRICING_ENGINE_ERROR"


# Validation exceptions


class ValidationError(PricingEngineError):
    """Base exception for rejected input. Never mutates state."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Quantity is missing, not numeric, or negative."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object):
        self.quantity = str(quantity)
        super().__init__(f"Invalid quantity: {quantity!r}")


class InvalidRateError(ValidationError):
    """Rate is not numeric or negative."""

    code: str = "INVALID_RATE"

    def __init__(self, rate: object):
        self.rate = str(rate)
        super().__init__(f"Invalid rate: {rate!r}")


class InvalidDiscountError(ValidationError):
    """Order discount percentage is outside 0..100."""

    code: str = "INVALID_DISCOUNT"

    def __init__(self, discount_percent: object):
        self.discount_percent = str(discount_percent)
        super().__init__(
            f"Discount percent must be between 0 and 100, got {discount_percent!r}"
        )


class OverrideReasonTooShortError(ValidationError):
    """Override reason does not meet the minimum length once trimmed."""

    code: str = "OVERRIDE_REASON_TOO_SHORT"

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"Override reason must be at least {minimum} characters "
            f"(got {length})"
        )


class MalformedContractEntryError(ValidationError):
    """Contract rate entry fields are inconsistent with its variant."""

    code: str = "MALFORMED_CONTRACT_ENTRY"

    def __init__(self, material_id: str, reason: str):
        self.material_id = material_id
        self.reason = reason
        super().__init__(
            f"Malformed contract entry for material {material_id}: {reason}"
        )


class LineIndexError(ValidationError):
    """No order line exists at the given position."""

    code: str = "LINE_INDEX_OUT_OF_RANGE"

    def __init__(self, index: int, line_count: int):
        self.index = index
        self.line_count = line_count
        super().__init__(
            f"Line index {index} out of range for order with {line_count} line(s)"
        )


# Authorization exceptions


class AuthorizationError(PricingEngineError):
    """Base exception for failed override approval checks."""

    code: str = "AUTHORIZATION_ERROR"


class InvalidCredentialError(AuthorizationError):
    """Approver credential proof could not be verified."""

    code: str = "INVALID_CREDENTIAL"

    def __init__(self, reason: str = "Invalid approver credentials"):
        self.reason = reason
        super().__init__(reason)


class ApproverNotAuthorizedError(AuthorizationError):
    """Approver identity is valid but does not hold an override role."""

    code: str = "APPROVER_NOT_AUTHORIZED"

    def __init__(self, approver_id: str, required_roles: tuple[str, ...]):
        self.approver_id = approver_id
        self.required_roles = required_roles
        super().__init__(
            f"Approver {approver_id} lacks any of the roles "
            f"{', '.join(required_roles)} required to override contract rates"
        )


# Lookup exceptions


class NotFoundError(PricingEngineError):
    """Base exception for missing reference data."""

    code: str = "NOT_FOUND"


class MaterialNotFoundError(NotFoundError):
    """Material id is unknown to the material source."""

    code: str = "MATERIAL_NOT_FOUND"

    def __init__(self, material_id: str):
        self.material_id = material_id
        super().__init__(f"Material not found: {material_id}")


# Override workflow exceptions


class OverrideStateError(PricingEngineError):
    """Base exception for override workflow misuse."""

    code: str = "OVERRIDE_STATE_ERROR"


class NoPendingOverrideError(OverrideStateError):
    """An override decision was submitted while nothing is pending."""

    code: str = "NO_PENDING_OVERRIDE"

    def __init__(self):
        super().__init__("No override request is pending for this order")


class OverrideMismatchError(OverrideStateError):
    """A decision was made for a different request than the pending one."""

    code: str = "OVERRIDE_MISMATCH"

    def __init__(self, pending_material_id: str, decided_material_id: str):
        self.pending_material_id = pending_material_id
        self.decided_material_id = decided_material_id
        super().__init__(
            f"Decision for {decided_material_id!r} does not match the pending "
            f"override for {pending_material_id!r}"
        )


# Miscellaneous


class StaleCatalogError(PricingEngineError):
    """The supplied catalog does not belong to the session's counterparty."""

    code: str = "STALE_CATALOG"

    def __init__(self, expected_counterparty: str | None, actual_counterparty: str | None):
        self.expected_counterparty = expected_counterparty
        self.actual_counterparty = actual_counterparty
        super().__init__(
            f"Contract catalog for {actual_counterparty!r} cannot be used in a "
            f"session for {expected_counterparty!r}"
        )


class UnsupportedContractVariantError(PricingEngineError):
    """Rate resolution has no rule for the entry's variant."""

    code: str = "UNSUPPORTED_CONTRACT_VARIANT"

    def __init__(self, variant: object):
        self.variant = str(variant)
        super().__init__(f"Unsupported contract rate variant: {variant}")


class ImmutabilityViolationError(PricingEngineError):
    """
    Attempted modification of an append-only record.

    Override audit records are never updated or deleted once persisted.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
