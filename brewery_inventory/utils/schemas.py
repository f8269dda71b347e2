from datetime import timezone

from flask import current_app
from marshmallow import Schema, fields, validate, validates_schema, post_load, ValidationError, EXCLUDE

from brewery_inventory.models import ItemStatus, LotStatus, MovementType, ElementType, ReferenceKind
from brewery_inventory.utils.helpers import MAX_NEAR_EXPIRY_DAYS, QUANTITY_PLACES, has_quantity_scale


def _values(enum_cls, exclude=()):
    return [member.value for member in enum_cls if member not in exclude]


def quantity_scale(value):
    if value is not None and not has_quantity_scale(value):
        raise ValidationError(f"At most {QUANTITY_PLACES} decimal places.")


class BaseRequestSchema(Schema):
    """Unknown keys are dropped so clients can send whole resources back"""
    class Meta:
        unknown = EXCLUDE


class ItemRequestSchema(BaseRequestSchema):
    """Fields shared by raw material and finished good payloads"""
    code = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    name = fields.Str(required=True, validate=validate.Length(min=1, max=150))
    unit_of_measure = fields.Str(required=True, validate=validate.Length(min=1, max=20))
    minimum_stock = fields.Decimal(validate=[validate.Range(min=0), quantity_scale], load_default=0)
    status = fields.Str(validate=validate.OneOf(_values(ItemStatus)), load_default=ItemStatus.ACTIVE.value)
    notes = fields.Str(validate=validate.Length(max=1000), allow_none=True)


class RawMaterialRequestSchema(ItemRequestSchema):
    material_type = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    subtype = fields.Str(validate=validate.Length(max=50), allow_none=True)
    location = fields.Str(validate=validate.Length(max=100), allow_none=True)
    attributes = fields.Dict(allow_none=True)


class FinishedGoodRequestSchema(ItemRequestSchema):
    style = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    presentation = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    capacity = fields.Decimal(required=True, validate=validate.Range(min=0, min_inclusive=False))
    description = fields.Str(allow_none=True)


class ItemFilterSchema(BaseRequestSchema):
    code = fields.Str()
    name = fields.Str()
    status = fields.Str(validate=validate.OneOf(_values(ItemStatus)))
    material_type = fields.Str()
    style = fields.Str()
    low_stock = fields.Boolean()


class LotRequestSchema(BaseRequestSchema):
    """Fields shared by raw material and finished good lots"""
    item_id = fields.Int(required=True, validate=validate.Range(min=1))
    lot_code = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    quantity = fields.Decimal(required=True, validate=[validate.Range(min=0, min_inclusive=False), quantity_scale])
    quantity_available = fields.Decimal(validate=[validate.Range(min=0), quantity_scale], allow_none=True)
    received_date = fields.Date(allow_none=True)
    expiry_date = fields.Date(allow_none=True)
    notes = fields.Str(validate=validate.Length(max=1000), allow_none=True)

    @validates_schema
    def validate_available(self, data, **kwargs):
        available = data.get('quantity_available')
        if available is not None and available > data['quantity']:
            raise ValidationError('Cannot exceed quantity.', 'quantity_available')


class RawMaterialLotRequestSchema(LotRequestSchema):
    supplier_id = fields.Int(allow_none=True)
    production_date = fields.Date(allow_none=True)
    purchase_order_id = fields.Int(allow_none=True)


class FinishedGoodLotRequestSchema(LotRequestSchema):
    production_batch_id = fields.Int(allow_none=True)
    best_before_date = fields.Date(allow_none=True)
    location = fields.Str(validate=validate.Length(max=100), allow_none=True)


class LotFilterSchema(BaseRequestSchema):
    item_id = fields.Int(validate=validate.Range(min=1))
    status = fields.Str(validate=validate.OneOf(_values(LotStatus)))
    lot_code = fields.Str()
    expiry_from = fields.Date()
    expiry_to = fields.Date()
    available_only = fields.Boolean()


class MovementRequestSchema(BaseRequestSchema):
    """Schema for posting a stock movement"""
    movement_type = fields.Str(required=True, validate=validate.OneOf(_values(MovementType)))
    element_type = fields.Str(required=True, validate=validate.OneOf(_values(ElementType)))
    element_id = fields.Int(required=True, validate=validate.Range(min=1))
    lot_id = fields.Int(validate=validate.Range(min=1), allow_none=True)
    quantity = fields.Decimal(required=True, validate=[validate.Range(min=0, min_inclusive=False), quantity_scale])
    unit_of_measure = fields.Str(validate=validate.Length(max=20), allow_none=True)
    document_reference = fields.Str(validate=validate.Length(max=50), allow_none=True)
    reference_id = fields.Int(allow_none=True)
    reason = fields.Str(validate=validate.Length(max=100), allow_none=True)
    notes = fields.Str(validate=validate.Length(max=1000), allow_none=True)
    idempotency_key = fields.Str(validate=validate.Length(min=1, max=100), allow_none=True)


class ReferenceRequestSchema(BaseRequestSchema):
    """External document pointing at an item and optionally one of its lots"""
    reference_kind = fields.Str(required=True, validate=validate.OneOf(_values(ReferenceKind)))
    document_id = fields.Int(allow_none=True)
    lot_id = fields.Int(validate=validate.Range(min=1), allow_none=True)


class PaginationSchema(BaseRequestSchema):
    page = fields.Int(validate=validate.Range(min=1), load_default=1)
    limit = fields.Int(validate=validate.Range(min=1), load_default=None)

    @validates_schema
    def validate_limit(self, data, **kwargs):
        max_page_size = current_app.config.get('MAX_PAGE_SIZE', 100)
        if max_page_size and data.get('limit') and data['limit'] > max_page_size:
            raise ValidationError(f'Must be less than or equal to {max_page_size}.', 'limit')


class MovementFilterSchema(PaginationSchema):
    date_from = fields.DateTime()
    date_to = fields.DateTime()
    movement_type = fields.Str(validate=validate.OneOf(_values(MovementType)))
    element_type = fields.Str(validate=validate.OneOf(_values(ElementType)))
    element_id = fields.Int(validate=validate.Range(min=1))
    lot_id = fields.Int(validate=validate.Range(min=1))
    user_id = fields.Int(validate=validate.Range(min=1))
    document_reference = fields.Str()

    @post_load
    def naive_utc(self, data, **kwargs):
        """Ledger timestamps are stored as naive UTC"""
        for key in ('date_from', 'date_to'):
            value = data.get(key)
            if value is not None and value.tzinfo is not None:
                data[key] = value.astimezone(timezone.utc).replace(tzinfo=None)
        return data


class NearExpirySchema(BaseRequestSchema):
    days = fields.Int(validate=validate.Range(min=1, max=MAX_NEAR_EXPIRY_DAYS))


class ImmutableFieldsMixin:
    """Rejects fields that can never change after creation, with field-level details"""
    immutable_fields = ()

    @validates_schema(pass_original=True)
    def reject_immutable(self, data, original_data, **kwargs):
        original_data = original_data or {}
        rejected = {field: ['Field cannot be modified.'] for field in self.immutable_fields if field in original_data}
        if rejected:
            raise ValidationError(rejected)


class RawMaterialUpdateSchema(ImmutableFieldsMixin, RawMaterialRequestSchema):
    immutable_fields = ('id', 'code', 'current_stock')


class FinishedGoodUpdateSchema(ImmutableFieldsMixin, FinishedGoodRequestSchema):
    immutable_fields = ('id', 'code', 'current_stock')


class LotUpdateSchema(ImmutableFieldsMixin, BaseRequestSchema):
    immutable_fields = ('id', 'item_id', 'lot_code', 'quantity', 'quantity_available')

    received_date = fields.Date()
    expiry_date = fields.Date(allow_none=True)
    status = fields.Str(validate=validate.OneOf(_values(LotStatus, exclude=(LotStatus.DEPLETED,))))
    notes = fields.Str(validate=validate.Length(max=1000), allow_none=True)


class RawMaterialLotUpdateSchema(LotUpdateSchema):
    supplier_id = fields.Int(allow_none=True)
    production_date = fields.Date(allow_none=True)
    purchase_order_id = fields.Int(allow_none=True)


class FinishedGoodLotUpdateSchema(LotUpdateSchema):
    production_batch_id = fields.Int(allow_none=True)
    best_before_date = fields.Date(allow_none=True)
    location = fields.Str(validate=validate.Length(max=100), allow_none=True)
