"""API Validation Schemas."""

from marshmallow import EXCLUDE, Schema, fields, validate


class OcrRequestSchema(Schema):
    """Body of ``POST /api/ocr``."""

    class Meta:
        unknown = EXCLUDE

    community_id = fields.Str(required=True, data_key="communityId", validate=validate.Length(min=1))
    storage_path = fields.Str(required=True, data_key="storagePath", validate=validate.Length(min=1))
    created_by = fields.Str(required=True, data_key="createdBy", validate=validate.Length(min=1))
    exchange_rate = fields.Float(
        load_default=None,
        allow_none=True,
        allow_nan=False,
        data_key="exchangeRateGBPToCNY",
        validate=validate.Range(min=0),
    )


REQUIRED_OCR_FIELDS = ("communityId", "storagePath", "createdBy")


class BillItemSchema(Schema):
    id = fields.Str(dump_only=True)
    name = fields.Str()
    price = fields.Float()
    claimed_by = fields.Str(allow_none=True, data_key="claimedBy")


class BillSchema(Schema):
    id = fields.Str(dump_only=True)
    community_id = fields.Str(data_key="communityId")
    created_by = fields.Str(data_key="createdBy")
    created_at = fields.Int(data_key="createdAt")
    bill_name = fields.Str(data_key="billName")
    currency = fields.Str()
    exchange_rate_gbp_to_cny = fields.Float(data_key="exchangeRateGBPToCNY")
    participants = fields.List(fields.Str())
    total = fields.Float()
    storage_path = fields.Str(allow_none=True, data_key="storagePath")


class BillDetailSchema(BillSchema):
    items = fields.List(fields.Nested(BillItemSchema))


class BillUpdateSchema(Schema):
    """Body of ``PATCH /api/communities/<community_id>/bills/<bill_id>``."""

    class Meta:
        unknown = EXCLUDE

    bill_name = fields.Str(data_key="billName", validate=validate.Length(min=1, max=255))
    exchange_rate_gbp_to_cny = fields.Float(
        data_key="exchangeRateGBPToCNY", allow_nan=False, validate=validate.Range(min=0)
    )


class UserActionSchema(Schema):
    """Body naming the acting user, e.g. for claims and participant toggles."""

    class Meta:
        unknown = EXCLUDE

    user_id = fields.Str(required=True, data_key="userId", validate=validate.Length(min=1))
