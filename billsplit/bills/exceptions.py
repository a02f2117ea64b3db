"""Custom exceptions for bill operations."""


class BillValidationError(Exception):
    """Base exception for bill validation errors."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API responses."""
        result = {"error": self.message}
        if self.field:
            result["field"] = self.field
        return result


class ItemAlreadyClaimedError(BillValidationError):
    """Raised when a user tries to claim an item somebody else has claimed."""

    status_code = 409

    def __init__(self, item_id: str, claimed_by: str):
        self.item_id = item_id
        self.claimed_by = claimed_by
        super().__init__(f"Item '{item_id}' is already claimed by another participant", field="claimedBy")


class BillNotFoundError(Exception):
    """Raised when a requested bill is not found in the community."""

    status_code = 404

    def __init__(self, bill_id: str, community_id: str | None = None):
        self.bill_id = bill_id
        self.community_id = community_id

        if community_id:
            message = f"Bill '{bill_id}' not found in community '{community_id}'"
        else:
            message = f"Bill '{bill_id}' not found"

        super().__init__(message)


class BillItemNotFoundError(Exception):
    """Raised when a requested item does not belong to the bill."""

    status_code = 404

    def __init__(self, item_id: str, bill_id: str):
        self.item_id = item_id
        self.bill_id = bill_id
        super().__init__(f"Item '{item_id}' not found on bill '{bill_id}'")
