import pytest
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import patch

from brewery_inventory.models import (
    ElementType, ItemStatus, LotStatus, MovementType, ReferenceKind,
    InventoryMovement, RawMaterial, RawMaterialLot, FinishedGoodLot
)
from brewery_inventory.repositories import ItemRepository, LotRepository, MovementRepository
from brewery_inventory.services import (
    ItemService, LotService, MovementService, ReconciliationService, ReferenceService, ReportService
)
from brewery_inventory.utils.errors import ConflictError, NotFoundError, ValidationError
from tests.conftest import (
    TEST_USER_ID, create_test_raw_material, create_test_finished_good,
    receive_test_lot, create_test_reference, days_from_today
)

RAW = ElementType.RAW_MATERIAL
FINISHED = ElementType.FINISHED_GOOD


def lots_total(item):
    return sum(
        (lot.quantity_available for lot in item.lots if lot.status != LotStatus.BLOCKED),
        Decimal('0')
    )


class TestItemService:
    """Test ItemService business logic."""

    def test_create_starts_with_zero_stock(self, db_session):
        service = ItemService(RAW)

        item = service.create({
            'code': 'MLT-01',
            'name': 'Pilsner Malt',
            'unit_of_measure': 'kg',
            'material_type': 'Malt',
            'minimum_stock': 50,
            'current_stock': 500,
        })

        assert item.code == 'MLT-01'
        assert item.current_stock == Decimal('0')
        assert item.minimum_stock == Decimal('50')
        assert item.status == ItemStatus.ACTIVE

    def test_create_duplicate_code(self, db_session):
        create_test_raw_material(db_session, code='MLT-01')

        with pytest.raises(ConflictError):
            ItemService(RAW).create({
                'code': 'MLT-01', 'name': 'Other', 'unit_of_measure': 'kg', 'material_type': 'Malt'
            })

    def test_get_missing_item(self, db_session):
        with pytest.raises(NotFoundError):
            ItemService(FINISHED).get(999)

    def test_get_by_code(self, db_session):
        create_test_finished_good(db_session, code='PT-IPA-355')

        item = ItemService(FINISHED).get_by_code('PT-IPA-355')

        assert item.code == 'PT-IPA-355'

    def test_update_rejects_immutable_fields(self, db_session):
        item = create_test_raw_material(db_session)

        with pytest.raises(ValidationError) as exc_info:
            ItemService(RAW).update(item.id, {'code': 'NEW', 'current_stock': 10, 'name': 'x'})

        assert set(exc_info.value.details) == {'code', 'current_stock'}

    def test_update_mutable_fields(self, db_session):
        item = create_test_raw_material(db_session)

        updated = ItemService(RAW).update(item.id, {'name': 'Munich Malt', 'minimum_stock': '80'})

        assert updated.name == 'Munich Malt'
        assert updated.minimum_stock == Decimal('80')

    def test_update_rejects_negative_minimum(self, db_session):
        item = create_test_raw_material(db_session)

        with pytest.raises(ValidationError):
            ItemService(RAW).update(item.id, {'minimum_stock': -1})

    def test_delete_unreferenced_item_is_hard(self, db_session):
        item = create_test_raw_material(db_session)
        item_id = item.id

        result = ItemService(RAW).delete(item_id)

        assert result['deleted'] == 'hard'
        assert db_session.get(RawMaterial, item_id) is None

    def test_delete_item_with_lots_is_soft(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 10)

        result = ItemService(RAW).delete(item.id)

        assert result['deleted'] == 'soft'
        assert ItemService(RAW).get(item.id).status == ItemStatus.INACTIVE

    def test_delete_item_with_external_reference_is_soft(self, db_session):
        item = create_test_finished_good(db_session)
        create_test_reference(db_session, item, ReferenceKind.RECIPE)

        result = ItemService(FINISHED).delete(item.id)

        assert result['deleted'] == 'soft'

    def test_list_by_filter(self, db_session):
        create_test_raw_material(db_session, code='HOP-01', name='Cascade', material_type='Hops')
        create_test_raw_material(db_session, code='MLT-02', name='Crystal', material_type='Malt')

        hops = ItemService(RAW).list_by_filter({'material_type': 'Hops'})
        by_code = ItemService(RAW).list_by_filter({'code': 'mlt'})

        assert [item.code for item in hops] == ['HOP-01']
        assert [item.code for item in by_code] == ['MLT-02']

    def test_get_with_lots(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 10, lot_code='A')
        receive_test_lot(item, 5, lot_code='B')

        data = ItemService(RAW).get_with_lots(item.id)

        assert data['current_stock'] == 15.0
        assert [lot['lot_code'] for lot in data['lots']] == ['A', 'B']

    def test_adjust_stock_rejects_negative(self, db_session):
        item = create_test_finished_good(db_session, current_stock=Decimal('3'))

        with pytest.raises(ValidationError):
            ItemService(FINISHED).adjust_stock(item, Decimal('4'), 'out')


class TestLotService:
    """Test lot lifecycle through the ledger."""

    def test_create_posts_entry(self, db_session):
        item = create_test_raw_material(db_session, code='MLT-01')

        lot = receive_test_lot(item, 100, lot_code='L-100')

        assert lot.quantity_available == Decimal('100')
        assert lot.status == LotStatus.AVAILABLE
        assert ItemService(RAW).get(item.id).current_stock == Decimal('100')

        movements = InventoryMovement.query.filter_by(lot_id=lot.id).all()
        assert len(movements) == 1
        assert movements[0].movement_type == MovementType.ENTRY
        assert movements[0].document_reference == 'ManualReceipt'
        assert movements[0].user_id == TEST_USER_ID

    def test_create_with_purchase_order_reference(self, db_session):
        item = create_test_raw_material(db_session)

        lot = receive_test_lot(item, 20, purchase_order_id=55)

        movement = InventoryMovement.query.filter_by(lot_id=lot.id).one()
        assert movement.document_reference == 'PurchaseOrder'
        assert movement.reference_id == 55

    def test_create_with_partial_availability(self, db_session):
        item = create_test_finished_good(db_session)

        lot = receive_test_lot(item, 24, quantity_available=12)

        assert lot.quantity == Decimal('24')
        assert lot.quantity_available == Decimal('12')
        assert ItemService(FINISHED).get(item.id).current_stock == Decimal('12')

    def test_create_with_nothing_available_is_depleted(self, db_session):
        item = create_test_finished_good(db_session)

        lot = receive_test_lot(item, 24, quantity_available=0)

        assert lot.status == LotStatus.DEPLETED
        assert InventoryMovement.query.count() == 0

    @pytest.mark.parametrize('fields', [
        {'quantity': 0},
        {'quantity': -5},
        {'quantity': 10, 'quantity_available': 11},
        {'quantity': 10, 'quantity_available': -1},
        {'quantity': '10.0005'},
        {'quantity': 10, 'quantity_available': '0.0004'},
    ])
    def test_create_rejects_bad_quantities(self, db_session, fields):
        item = create_test_raw_material(db_session)

        with pytest.raises(ValidationError):
            receive_test_lot(item, **fields)

    def test_create_for_missing_item(self, db_session):
        with pytest.raises(NotFoundError):
            LotService(RAW).create({'item_id': 404, 'lot_code': 'X', 'quantity': 1}, TEST_USER_ID)

    def test_create_duplicate_lot_code(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 10, lot_code='DUP')

        with pytest.raises(ConflictError):
            receive_test_lot(item, 10, lot_code='DUP')

        assert ItemService(RAW).get(item.id).current_stock == Decimal('10')

    def test_create_requires_user(self, db_session):
        item = create_test_raw_material(db_session)

        with pytest.raises(ValidationError):
            LotService(RAW).create({'item_id': item.id, 'lot_code': 'X', 'quantity': 1}, None)

    def test_list_by_item_available_in_fifo_order(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 10, lot_code='NO-EXPIRY')
        receive_test_lot(item, 10, lot_code='LATE', expiry_date=days_from_today(10))
        receive_test_lot(item, 10, lot_code='EARLY', expiry_date=days_from_today(5))

        lots = LotService(RAW).list_by_item(item.id, status='Available')

        assert [lot.lot_code for lot in lots] == ['EARLY', 'LATE', 'NO-EXPIRY']

    def test_update_rejects_immutable_fields(self, db_session):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 10)

        with pytest.raises(ValidationError) as exc_info:
            LotService(RAW).update(lot.id, {'quantity': 20, 'lot_code': 'Z'}, TEST_USER_ID)

        assert set(exc_info.value.details) == {'quantity', 'lot_code'}

    def test_update_rejects_manual_depleted(self, db_session):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 10)

        with pytest.raises(ValidationError):
            LotService(RAW).update(lot.id, {'status': 'Depleted'}, TEST_USER_ID)

    def test_block_and_unblock_keep_aggregate(self, db_session):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 40)
        receive_test_lot(item, 60)

        LotService(RAW).update(lot.id, {'status': 'Blocked'}, TEST_USER_ID)

        refreshed = ItemService(RAW).get(item.id)
        assert refreshed.current_stock == Decimal('60')
        assert lots_total(refreshed) == Decimal('60')
        blocked = LotService(RAW).get(lot.id)
        assert blocked.status == LotStatus.BLOCKED
        assert blocked.quantity_available == Decimal('40')

        LotService(RAW).update(lot.id, {'status': 'Available'}, TEST_USER_ID)

        assert ItemService(RAW).get(item.id).current_stock == Decimal('100')
        reasons = [m.reason for m in InventoryMovement.query.filter_by(lot_id=lot.id).order_by(InventoryMovement.id)]
        assert reasons == ['Lot received', 'Lot blocked', 'Lot unblocked']

    def test_update_metadata(self, db_session):
        item = create_test_finished_good(db_session)
        lot = receive_test_lot(item, 12)

        updated = LotService(FINISHED).update(
            lot.id, {'location': 'Cold room 2', 'expiry_date': '2030-01-31'}, TEST_USER_ID
        )

        assert updated.location == 'Cold room 2'
        assert updated.expiry_date == date(2030, 1, 31)

    def test_delete_unreferenced_lot_writes_off_balance(self, db_session):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 25)
        lot_id = lot.id

        result = LotService(RAW).delete(lot_id, TEST_USER_ID)

        assert result['deleted'] == 'hard'
        assert db_session.get(RawMaterialLot, lot_id) is None
        assert ItemService(RAW).get(item.id).current_stock == Decimal('0')
        exit_row = InventoryMovement.query.filter_by(lot_id=lot_id, movement_type=MovementType.EXIT).one()
        assert exit_row.quantity == Decimal('25')

    def test_delete_referenced_raw_lot_blocks(self, db_session):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 25)
        create_test_reference(db_session, item, ReferenceKind.CONSUMPTION, lot=lot)

        result = LotService(RAW).delete(lot.id, TEST_USER_ID)

        assert result == {'id': lot.id, 'deleted': 'soft', 'status': 'Blocked'}
        assert ItemService(RAW).get(item.id).current_stock == Decimal('0')

    def test_delete_finished_lot_with_sale_blocks(self, db_session):
        item = create_test_finished_good(db_session)
        lot = receive_test_lot(item, 24)
        create_test_reference(db_session, item, ReferenceKind.SALE, lot=lot)

        result = LotService(FINISHED).delete(lot.id, TEST_USER_ID)

        assert result['deleted'] == 'soft'
        assert db_session.get(FinishedGoodLot, lot.id) is not None

    def test_purchase_order_reference_does_not_block_delete(self, db_session):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 25)
        create_test_reference(db_session, item, ReferenceKind.PURCHASE_ORDER, lot=lot)

        result = LotService(RAW).delete(lot.id, TEST_USER_ID)

        assert result['deleted'] == 'hard'

    @pytest.mark.parametrize('action', ['update', 'delete'])
    def test_item_row_locked_before_lot_row(self, db_session, action):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 10)
        locks = []
        item_get = ItemRepository.get_by_id
        lot_get = LotRepository.get_by_id

        def record_item(repo, item_id, lock=False):
            if lock:
                locks.append('item')
            return item_get(repo, item_id, lock=lock)

        def record_lot(repo, lot_id, lock=False):
            if lock:
                locks.append('lot')
            return lot_get(repo, lot_id, lock=lock)

        with patch.object(ItemRepository, 'get_by_id', record_item), \
                patch.object(LotRepository, 'get_by_id', record_lot):
            if action == 'update':
                LotService(RAW).update(lot.id, {'status': 'Blocked'}, TEST_USER_ID)
            else:
                LotService(RAW).delete(lot.id, TEST_USER_ID)

        assert locks[:2] == ['item', 'lot']


class TestMovementService:
    """Test the movement ledger."""

    def test_exit_then_oversized_exit(self, db_session):
        item = create_test_raw_material(db_session, code='MLT-01')
        lot = receive_test_lot(item, 100)
        service = MovementService()

        movements = service.create_movement('Exit', 'RawMaterial', item.id, 30, TEST_USER_ID)

        assert len(movements) == 1
        assert movements[0].lot_id == lot.id
        assert ItemService(RAW).get(item.id).current_stock == Decimal('70')
        assert LotService(RAW).get(lot.id).quantity_available == Decimal('70')

        with pytest.raises(ValidationError):
            service.create_movement('Exit', 'RawMaterial', item.id, 1000, TEST_USER_ID)

        assert ItemService(RAW).get(item.id).current_stock == Decimal('70')
        assert LotService(RAW).get(lot.id).quantity_available == Decimal('70')
        assert InventoryMovement.query.count() == 2

    def test_fifo_by_expiry_with_split(self, db_session):
        item = create_test_raw_material(db_session)
        no_expiry = receive_test_lot(item, 40, lot_code='L3')
        late = receive_test_lot(item, 40, lot_code='L2', expiry_date=days_from_today(10))
        early = receive_test_lot(item, 40, lot_code='L1', expiry_date=days_from_today(5))

        movements = MovementService().create_movement(
            MovementType.EXIT, RAW, item.id, 100, TEST_USER_ID, idempotency_key='brew-42'
        )

        assert [m.lot_id for m in movements] == [early.id, late.id, no_expiry.id]
        assert [m.quantity for m in movements] == [Decimal('40'), Decimal('40'), Decimal('20')]
        assert [m.split_index for m in movements] == [0, 1, 2]
        assert LotService(RAW).get(early.id).status == LotStatus.DEPLETED
        assert LotService(RAW).get(late.id).status == LotStatus.DEPLETED
        assert LotService(RAW).get(no_expiry.id).quantity_available == Decimal('20')

    def test_fifo_skips_expired_lots(self, db_session):
        item = create_test_raw_material(db_session)
        expired = receive_test_lot(item, 10, lot_code='OLD', expiry_date=days_from_today(-1))
        fresh = receive_test_lot(item, 10, lot_code='NEW', expiry_date=days_from_today(30))

        movements = MovementService().create_movement('Exit', 'RawMaterial', item.id, 5, TEST_USER_ID)

        assert [m.lot_id for m in movements] == [fresh.id]
        assert LotService(RAW).get(expired.id).quantity_available == Decimal('10')

    def test_exit_short_on_eligible_lots_changes_nothing(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 10, expiry_date=days_from_today(-1))
        receive_test_lot(item, 10)

        with pytest.raises(ValidationError):
            MovementService().create_movement('Exit', 'RawMaterial', item.id, 15, TEST_USER_ID)

        assert ItemService(RAW).get(item.id).current_stock == Decimal('20')
        assert InventoryMovement.query.filter_by(movement_type=MovementType.EXIT).count() == 0

    def test_exit_from_pinned_lot(self, db_session):
        item = create_test_finished_good(db_session)
        first = receive_test_lot(item, 10, expiry_date=days_from_today(1))
        second = receive_test_lot(item, 10, expiry_date=days_from_today(20))

        MovementService().create_movement('Exit', 'FinishedGood', item.id, 4, TEST_USER_ID, lot_id=second.id)

        assert LotService(FINISHED).get(first.id).quantity_available == Decimal('10')
        assert LotService(FINISHED).get(second.id).quantity_available == Decimal('6')

    def test_exit_pinned_lot_insufficient(self, db_session):
        item = create_test_finished_good(db_session)
        lot = receive_test_lot(item, 10)
        receive_test_lot(item, 50)

        with pytest.raises(ValidationError) as exc_info:
            MovementService().create_movement('Exit', 'FinishedGood', item.id, 11, TEST_USER_ID, lot_id=lot.id)

        assert 'Insufficient lot quantity' in exc_info.value.message

    def test_lot_of_another_item(self, db_session):
        item = create_test_raw_material(db_session)
        other = create_test_raw_material(db_session)
        other_lot = receive_test_lot(other, 10)

        with pytest.raises(ValidationError):
            MovementService().create_movement('Exit', 'RawMaterial', item.id, 1, TEST_USER_ID, lot_id=other_lot.id)

    def test_missing_lot(self, db_session):
        item = create_test_raw_material(db_session)

        with pytest.raises(NotFoundError):
            MovementService().create_movement('Entry', 'RawMaterial', item.id, 1, TEST_USER_ID, lot_id=999)

    def test_missing_item(self, db_session):
        with pytest.raises(NotFoundError):
            MovementService().create_movement('Entry', 'FinishedGood', 999, 1, TEST_USER_ID)

    @pytest.mark.parametrize('quantity', [0, -3])
    def test_non_positive_quantity(self, db_session, quantity):
        item = create_test_raw_material(db_session)

        with pytest.raises(ValidationError):
            MovementService().create_movement('Entry', 'RawMaterial', item.id, quantity, TEST_USER_ID)

    @pytest.mark.parametrize('quantity', ['0.0004', '1.0006', Decimal('2.5001')])
    def test_quantity_finer_than_stored_precision(self, db_session, quantity):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 10)

        with pytest.raises(ValidationError) as exc_info:
            MovementService().create_movement('Exit', 'RawMaterial', item.id, quantity, TEST_USER_ID)

        assert 'quantity' in exc_info.value.details
        assert InventoryMovement.query.count() == 1
        assert ItemService(RAW).get(item.id).current_stock == Decimal('10')

    def test_smallest_stored_quantity_is_accepted(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 10)

        movements = MovementService().create_movement('Exit', 'RawMaterial', item.id, '0.001', TEST_USER_ID)

        assert movements[0].quantity == Decimal('0.001')
        assert ItemService(RAW).get(item.id).current_stock == Decimal('9.999')

    def test_user_is_required(self, db_session):
        item = create_test_raw_material(db_session)

        with pytest.raises(ValidationError) as exc_info:
            MovementService().create_movement('Entry', 'RawMaterial', item.id, 1, None)

        assert 'user_id' in exc_info.value.details

    def test_invalid_movement_type(self, db_session):
        item = create_test_raw_material(db_session)

        with pytest.raises(ValidationError):
            MovementService().create_movement('Transfer', 'RawMaterial', item.id, 1, TEST_USER_ID)

    def test_entry_without_lot_opens_receipt_lot(self, db_session):
        item = create_test_raw_material(db_session)

        movements = MovementService().create_movement('Entry', 'RawMaterial', item.id, 12.5, TEST_USER_ID)

        lot = LotService(RAW).get(movements[0].lot_id)
        assert lot.lot_code.startswith('RCV-')
        assert lot.quantity == Decimal('12.5')
        assert lot.quantity_available == Decimal('12.5')
        assert ItemService(RAW).get(item.id).current_stock == Decimal('12.5')

    def test_entry_into_lot_beyond_capacity(self, db_session):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 10, quantity_available=8)

        with pytest.raises(ValidationError):
            MovementService().create_movement('PositiveAdjustment', 'RawMaterial', item.id, 3, TEST_USER_ID, lot_id=lot.id)

        MovementService().create_movement('PositiveAdjustment', 'RawMaterial', item.id, 2, TEST_USER_ID, lot_id=lot.id)
        assert LotService(RAW).get(lot.id).quantity_available == Decimal('10')

    def test_movement_on_blocked_lot_rejected(self, db_session):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 10)
        LotService(RAW).update(lot.id, {'status': 'Blocked'}, TEST_USER_ID)

        with pytest.raises(ValidationError):
            MovementService().create_movement('Exit', 'RawMaterial', item.id, 1, TEST_USER_ID, lot_id=lot.id)

    def test_unit_of_measure_must_match(self, db_session):
        item = create_test_raw_material(db_session, unit_of_measure='kg')
        receive_test_lot(item, 10)

        with pytest.raises(ValidationError):
            MovementService().create_movement('Exit', 'RawMaterial', item.id, 1, TEST_USER_ID, unit_of_measure='L')

        movements = MovementService().create_movement('Exit', 'RawMaterial', item.id, 1, TEST_USER_ID, unit_of_measure='KG')
        assert movements[0].unit_of_measure == 'kg'

    def test_failure_after_lot_update_rolls_back_everything(self, db_session):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 50)
        count_before = InventoryMovement.query.count()

        with patch.object(MovementRepository, 'append', side_effect=RuntimeError('disk full')):
            with pytest.raises(RuntimeError):
                MovementService().create_movement('Exit', 'RawMaterial', item.id, 20, TEST_USER_ID)

        assert ItemService(RAW).get(item.id).current_stock == Decimal('50')
        assert LotService(RAW).get(lot.id).quantity_available == Decimal('50')
        assert InventoryMovement.query.count() == count_before

    def test_idempotent_replay_returns_original(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 50)
        service = MovementService()

        first = service.create_movement('Exit', 'RawMaterial', item.id, 10, TEST_USER_ID, idempotency_key='req-1')
        replay = service.create_movement('Exit', 'RawMaterial', item.id, 10, TEST_USER_ID, idempotency_key='req-1')

        assert [m.id for m in replay] == [m.id for m in first]
        assert ItemService(RAW).get(item.id).current_stock == Decimal('40')

    def test_idempotency_key_reused_for_other_request(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 50)
        service = MovementService()
        service.create_movement('Exit', 'RawMaterial', item.id, 10, TEST_USER_ID, idempotency_key='req-2')

        with pytest.raises(ConflictError):
            service.create_movement('Exit', 'RawMaterial', item.id, 11, TEST_USER_ID, idempotency_key='req-2')

    def test_timestamps_are_monotonic(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 50)
        service = MovementService()
        for _ in range(5):
            service.create_movement('Exit', 'RawMaterial', item.id, 1, TEST_USER_ID)

        timestamps = [m.timestamp for m in InventoryMovement.query.order_by(InventoryMovement.id)]

        assert timestamps == sorted(timestamps)
        assert len(set(timestamps)) == len(timestamps)

    def test_aggregate_matches_lots_after_mixed_movements(self, db_session):
        item = create_test_finished_good(db_session)
        lot_a = receive_test_lot(item, 30, expiry_date=days_from_today(3))
        receive_test_lot(item, 30)
        service = MovementService()

        service.create_movement('Exit', 'FinishedGood', item.id, 35, TEST_USER_ID)
        service.create_movement('PositiveAdjustment', 'FinishedGood', item.id, 5, TEST_USER_ID, lot_id=lot_a.id)
        service.create_movement('NegativeAdjustment', 'FinishedGood', item.id, 2, TEST_USER_ID)
        service.create_movement('Entry', 'FinishedGood', item.id, 7, TEST_USER_ID)

        refreshed = ItemService(FINISHED).get(item.id)
        assert refreshed.current_stock == Decimal('35')
        assert lots_total(refreshed) == refreshed.current_stock
        for lot in refreshed.lots:
            assert Decimal('0') <= lot.quantity_available <= lot.quantity

    def test_list_movements_filters_and_is_repeatable(self, db_session):
        raw = create_test_raw_material(db_session)
        finished = create_test_finished_good(db_session)
        receive_test_lot(raw, 10)
        receive_test_lot(finished, 10)
        MovementService().create_movement('Exit', 'RawMaterial', raw.id, 1, TEST_USER_ID, document_reference='Consumption')

        filters = {'element_type': 'RawMaterial'}
        first = MovementService().list_movements(filters, page=1, limit=10)
        second = MovementService().list_movements(filters, page=1, limit=10)

        assert first == second
        assert first['pagination']['total'] == 2
        assert first['data'][0]['movement_type'] == 'Exit'
        by_document = MovementService().list_movements({'document_reference': 'consum'}, page=1, limit=10)
        assert by_document['pagination']['total'] == 1

    def test_list_movements_pagination(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 10)
        for _ in range(4):
            MovementService().create_movement('Exit', 'RawMaterial', item.id, 1, TEST_USER_ID)

        page = MovementService().list_by_element_type('RawMaterial', item.id, page=2, limit=2)

        assert page['pagination'] == {'total': 5, 'page': 2, 'limit': 2, 'total_pages': 3, 'has_more': True}
        assert len(page['data']) == 2


class TestReconciliationService:
    """Test low stock, near expiry and verification."""

    def test_low_stock_after_minimum_raised(self, db_session):
        item = create_test_raw_material(db_session, code='MLT-01')
        receive_test_lot(item, 100)
        MovementService().create_movement('Exit', 'RawMaterial', item.id, 30, TEST_USER_ID)

        assert ReconciliationService().low_stock(RAW) == []

        ItemService(RAW).update(item.id, {'minimum_stock': 80})
        low = ReconciliationService().low_stock(RAW)

        assert [entry['code'] for entry in low] == ['MLT-01']
        assert low[0]['deficit'] == 10.0

    def test_low_stock_ordered_by_deficit_and_ignores_inactive(self, db_session):
        create_test_raw_material(db_session, code='A', minimum_stock=Decimal('5'))
        create_test_finished_good(db_session, code='B', minimum_stock=Decimal('50'))
        create_test_raw_material(db_session, code='C', minimum_stock=Decimal('99'), status=ItemStatus.INACTIVE)

        low = ReconciliationService().low_stock()

        assert [entry['code'] for entry in low] == ['B', 'A']

    def test_near_expiry(self, db_session):
        item = create_test_raw_material(db_session)
        soon = receive_test_lot(item, 10, expiry_date=days_from_today(10))
        receive_test_lot(item, 10, expiry_date=days_from_today(40))
        receive_test_lot(item, 10, expiry_date=days_from_today(-1))
        receive_test_lot(item, 10)

        lots = ReconciliationService().near_expiry(30)

        assert [lot['id'] for lot in lots] == [soon.id]
        assert lots[0]['days_to_expiry'] == 10
        assert lots[0]['item_code'] == item.code

    def test_near_expiry_uses_configured_default(self, db_session):
        item = create_test_finished_good(db_session)
        receive_test_lot(item, 10, expiry_date=days_from_today(30))

        assert len(ReconciliationService().near_expiry()) == 1

    def test_near_expiry_skips_depleted_lots(self, db_session):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 10, expiry_date=days_from_today(3))
        MovementService().create_movement('Exit', 'RawMaterial', item.id, 10, TEST_USER_ID, lot_id=lot.id)

        assert ReconciliationService().near_expiry(30) == []

    @pytest.mark.parametrize('days', [0, -5, 3651, 100000000])
    def test_near_expiry_rejects_out_of_range_threshold(self, db_session, days):
        with pytest.raises(ValidationError):
            ReconciliationService().near_expiry(days)

    def test_near_expiry_at_longest_threshold(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 5, expiry_date=days_from_today(3000))

        assert len(ReconciliationService().near_expiry(3650)) == 1

    def test_verify_consistent(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 10)

        result = ReconciliationService().verify(RAW, item.id)

        assert result['consistent'] is True
        assert result['difference'] == 0.0

    def test_verify_detects_mismatch_without_correcting(self, db_session):
        item = create_test_raw_material(db_session)
        receive_test_lot(item, 10)
        item = ItemService(RAW).get(item.id)
        item.current_stock = Decimal('12')
        db_session.commit()

        result = ReconciliationService().verify(RAW, item.id)

        assert result['consistent'] is False
        assert result['difference'] == 2.0
        assert ItemService(RAW).get(item.id).current_stock == Decimal('12')

    def test_verify_all_returns_only_mismatches(self, db_session):
        good = create_test_raw_material(db_session)
        receive_test_lot(good, 10)
        bad = create_test_finished_good(db_session, current_stock=Decimal('3'))

        mismatches = ReconciliationService().verify_all()

        assert [(entry['element_type'], entry['item_id']) for entry in mismatches] == [('FinishedGood', bad.id)]


class TestReferenceService:
    """Test registration of external documents."""

    def test_registered_consumption_blocks_lot_delete(self, db_session):
        item = create_test_raw_material(db_session)
        lot = receive_test_lot(item, 25)

        reference = ReferenceService(RAW).register(item.id, 'Consumption', document_id=41, lot_id=lot.id)
        result = LotService(RAW).delete(lot.id, TEST_USER_ID)

        assert reference.reference_kind == ReferenceKind.CONSUMPTION
        assert result['deleted'] == 'soft'
        assert [ref.id for ref in ReferenceService(RAW).list_by_item(item.id)] == [reference.id]

    def test_registered_recipe_makes_item_delete_soft(self, db_session):
        item = create_test_raw_material(db_session)
        ReferenceService(RAW).register(item.id, ReferenceKind.RECIPE, document_id=3)

        result = ItemService(RAW).delete(item.id)

        assert result['deleted'] == 'soft'

    def test_kind_must_fit_element_type(self, db_session):
        item = create_test_raw_material(db_session)

        with pytest.raises(ValidationError) as exc_info:
            ReferenceService(RAW).register(item.id, 'Sale')

        assert 'reference_kind' in exc_info.value.details

    def test_lot_of_another_item(self, db_session):
        item = create_test_finished_good(db_session)
        other = create_test_finished_good(db_session)
        lot = receive_test_lot(other, 5)

        with pytest.raises(ValidationError):
            ReferenceService(FINISHED).register(item.id, 'Sale', lot_id=lot.id)

    def test_missing_item(self, db_session):
        with pytest.raises(NotFoundError):
            ReferenceService(FINISHED).register(999, 'Return')


class TestReportService:

    def test_movement_report(self, db_session):
        raw = create_test_raw_material(db_session)
        finished = create_test_finished_good(db_session)
        receive_test_lot(raw, 10)
        receive_test_lot(finished, 10)
        MovementService().create_movement('Exit', 'RawMaterial', raw.id, 4, 99)

        report = ReportService().movement_report({})

        assert report['total_movements'] == 3
        assert report['by_movement_type']['Entry'] == {'count': 2, 'quantity': 20.0}
        assert report['by_movement_type']['Exit'] == {'count': 1, 'quantity': 4.0}
        assert report['by_element_type'] == {'RawMaterial': 2, 'FinishedGood': 1}
        assert report['by_user'][0] == {'user_id': TEST_USER_ID, 'count': 2}
        assert report['by_day'] == [{'date': datetime.utcnow().date().isoformat(), 'count': 3}]

    def test_detailed_movements_include_codes(self, db_session):
        item = create_test_raw_material(db_session, code='HOP-09', name='Citra')
        lot = receive_test_lot(item, 10, lot_code='CIT-1')

        page = ReportService().detailed_movements({}, page=1, limit=10)

        entry = page['data'][0]
        assert entry['element_code'] == 'HOP-09'
        assert entry['element_name'] == 'Citra'
        assert entry['lot_code'] == 'CIT-1'
        assert entry['lot_id'] == lot.id
