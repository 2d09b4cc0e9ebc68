import uuid

import pytest
from sqlalchemy.exc import DataError, DBAPIError, OperationalError, SQLAlchemyError

from schemas.movements import MovementCreate
from services.actors import DefaultActorProvider
from services.catalog import find_product_by_code, product_exists, resolve_product
from services.errors import (
    ActorNotFound,
    ActorProvisioningFailed,
    InsufficientStock,
    InvalidKind,
    InvalidQuantity,
    InvalidReference,
    LocationNotFound,
    MissingField,
    ProductNotFound,
    StorageUnavailable,
    storage_guard,
)
from services.intake import normalize_kind, record_movement, validate_quantity
from services.ledger import MovementFilter, count_movements
from services.refs import MAX_ID, ByCode, ById, parse_ref
from services.stock import derive_stock
from tests.factories import make_location, make_product, make_user


def _req(**kw):
    base = {"product_ref": "P-001", "location_ref": "2C5", "kind": "IN", "quantity": 10}
    base.update(kw)
    return MovementCreate(**{k: v for k, v in base.items() if v is not ...})


@pytest.mark.parametrize("raw,expected", [("IN", "IN"), ("out", "OUT"), (" Entrada ", "IN"), ("SAIDA", "OUT")])
def test_normalize_kind(raw, expected):
    assert normalize_kind(raw) == expected


@pytest.mark.parametrize("raw", ["MOVE", "", 1, None])
def test_normalize_kind_rejects(raw):
    with pytest.raises(InvalidKind):
        normalize_kind(raw)


@pytest.mark.parametrize("raw,expected", [(1, 1), (250, 250), ("7", 7), (" 12 ", 12)])
def test_validate_quantity(raw, expected):
    assert validate_quantity(raw) == expected


@pytest.mark.parametrize("raw", [0, -1, 2.5, 3.0, "1.5", "abc", True, None])
def test_validate_quantity_rejects(raw):
    with pytest.raises(InvalidQuantity):
        validate_quantity(raw)


def test_request_accepts_legacy_field_names():
    req = MovementCreate(**{"product_id": 3, "compartment_id": "1A1", "tipo": "ENTRADA", "qty": 4, "user_id": "u"})
    assert (req.product_ref, req.location_ref, req.kind, req.quantity, req.actor_id) == (3, "1A1", "ENTRADA", 4, "u")


@pytest.mark.asyncio
async def test_record_in_then_out(session, actor_provider):
    p = await make_product(session)
    loc = await make_location(session, "2C5")

    m_in = await record_movement(session, _req(quantity=100), actor_provider=actor_provider)
    m_out = await record_movement(session, _req(kind="out", quantity=30), actor_provider=actor_provider)

    assert (m_in.kind, m_in.quantity, m_in.product_id, m_in.location_id) == ("IN", 100, p.id, loc.id)
    assert m_out.kind == "OUT"
    assert m_in.actor_id == m_out.actor_id
    assert await derive_stock(session, product_id=p.id, location_id=loc.id) == 70


@pytest.mark.asyncio
async def test_product_resolved_by_id_code_and_barcode(session, actor_provider):
    p = await make_product(session, code="P-001", barcode="7891000100103")
    await make_location(session, "2C5")

    for ref in (p.id, str(p.id), "P-001", "7891000100103"):
        m = await record_movement(session, _req(product_ref=ref, quantity=1), actor_provider=actor_provider)
        assert m.product_id == p.id


@pytest.mark.asyncio
async def test_location_resolved_by_id_and_lowercase_address(session, actor_provider):
    await make_product(session)
    loc = await make_location(session, "2C5")

    for ref in (loc.id, str(loc.id), "2c5"):
        m = await record_movement(session, _req(location_ref=ref, quantity=1), actor_provider=actor_provider)
        assert m.location_id == loc.id


@pytest.mark.asyncio
async def test_explicit_actor_wins(session, actor_provider):
    await make_product(session)
    await make_location(session, "2C5")
    await make_user(session, email="first@warehouse.local")
    operator = await make_user(session)

    m = await record_movement(session, _req(actor_id=str(operator.id)), actor_provider=actor_provider)
    assert m.actor_id == operator.id


@pytest.mark.asyncio
async def test_authenticated_user_used_when_no_actor_given(session, actor_provider):
    await make_product(session)
    await make_location(session, "2C5")
    await make_user(session, email="first@warehouse.local")
    operator = await make_user(session)

    m = await record_movement(session, _req(), actor_provider=actor_provider, current_user=operator)
    assert m.actor_id == operator.id


@pytest.mark.asyncio
async def test_unknown_actor_rejected(session, actor_provider):
    await make_product(session)
    await make_location(session, "2C5")

    with pytest.raises(ActorNotFound):
        await record_movement(session, _req(actor_id=str(uuid.uuid4())), actor_provider=actor_provider)
    with pytest.raises(ActorNotFound):
        await record_movement(session, _req(actor_id="not-a-uuid"), actor_provider=actor_provider)
    assert await count_movements(session) == 0


@pytest.mark.parametrize("field", ["product_ref", "location_ref", "kind", "quantity"])
@pytest.mark.asyncio
async def test_missing_field_fails_fast(session, actor_provider, field):
    with pytest.raises(MissingField) as ei:
        await record_movement(session, _req(**{field: ...}), actor_provider=actor_provider)
    assert ei.value.context["fields"] == [field]


@pytest.mark.asyncio
async def test_blank_string_counts_as_missing(session, actor_provider):
    with pytest.raises(MissingField):
        await record_movement(session, _req(kind="  "), actor_provider=actor_provider)


@pytest.mark.parametrize(
    "overrides,error",
    [
        ({"kind": "MOVE"}, InvalidKind),
        ({"quantity": 0}, InvalidQuantity),
        ({"quantity": 2.5}, InvalidQuantity),
        ({"product_ref": "NOPE"}, ProductNotFound),
        ({"product_ref": 999}, ProductNotFound),
        ({"location_ref": "X9Z"}, LocationNotFound),
        ({"location_ref": "5C9"}, LocationNotFound),
    ],
)
@pytest.mark.asyncio
async def test_rejection_leaves_ledger_untouched(session, actor_provider, overrides, error):
    p = await make_product(session)
    loc = await make_location(session, "2C5")
    await record_movement(session, _req(quantity=5), actor_provider=actor_provider)

    with pytest.raises(error):
        await record_movement(session, _req(**overrides), actor_provider=actor_provider)

    assert await count_movements(session, MovementFilter(product_id=p.id)) == 1
    assert await count_movements(session, MovementFilter(location_id=loc.id)) == 1


@pytest.mark.asyncio
async def test_overdraw_rejected_by_default(session, actor_provider):
    p = await make_product(session)
    loc = await make_location(session, "2C5")
    await record_movement(session, _req(quantity=10), actor_provider=actor_provider)

    with pytest.raises(InsufficientStock) as ei:
        await record_movement(session, _req(kind="OUT", quantity=11), actor_provider=actor_provider)

    assert ei.value.context["available"] == 10
    assert ei.value.context["requested"] == 11
    assert await count_movements(session) == 1
    assert await derive_stock(session, product_id=p.id, location_id=loc.id) == 10


@pytest.mark.asyncio
async def test_overdraw_tolerated_when_disabled_and_floored(session, actor_provider):
    p = await make_product(session)
    loc = await make_location(session, "2C5")

    m = await record_movement(session, _req(kind="OUT", quantity=50), actor_provider=actor_provider, reject_overdraw=False)

    assert m.kind == "OUT"
    assert await derive_stock(session, product_id=p.id, location_id=loc.id) == 0


@pytest.mark.asyncio
async def test_out_of_exact_stock_allowed(session, actor_provider):
    p = await make_product(session)
    loc = await make_location(session, "2C5")
    await record_movement(session, _req(quantity=8), actor_provider=actor_provider)

    await record_movement(session, _req(kind="OUT", quantity=8), actor_provider=actor_provider)
    assert await derive_stock(session, product_id=p.id, location_id=loc.id) == 0


@pytest.mark.asyncio
async def test_actor_provisioning_failure(session, monkeypatch):
    await make_product(session)
    await make_location(session, "2C5")

    async def _broken_commit():
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(session, "commit", _broken_commit)
    provider = DefaultActorProvider("api@warehouse.local", "API Default User")

    with pytest.raises(ActorProvisioningFailed) as ei:
        await provider.get(session)
    assert ei.value.context["email"] == "api@warehouse.local"


@pytest.mark.asyncio
async def test_storage_guard_wraps_connectivity_errors():
    with pytest.raises(StorageUnavailable) as ei:
        async with storage_guard("movement append"):
            raise OperationalError("INSERT", {}, ConnectionRefusedError("refused"))

    assert ei.value.kind == "StorageUnavailable"
    assert ei.value.context["operation"] == "movement append"
    assert ei.value.to_dict()["message"] == "Storage unavailable during movement append"


@pytest.mark.asyncio
async def test_storage_guard_wraps_any_driver_error():
    with pytest.raises(StorageUnavailable):
        async with storage_guard("movement query"):
            raise DBAPIError("SELECT", {}, RuntimeError("driver gone"))


@pytest.mark.asyncio
async def test_storage_guard_reports_rejected_values():
    with pytest.raises(InvalidReference) as ei:
        async with storage_guard("product lookup"):
            raise DataError("SELECT", {}, OverflowError("integer out of range"))

    assert ei.value.http_status == 422
    assert ei.value.context["operation"] == "product lookup"
    assert "out of range" in ei.value.context["error"]


@pytest.mark.asyncio
async def test_catalog_lookups(session):
    p = await make_product(session)

    assert await product_exists(session, p.id)
    assert not await product_exists(session, p.id + 1)
    assert (await find_product_by_code(session, "P-001")).id == p.id
    assert (await find_product_by_code(session, "7891000100103")).id == p.id
    assert await find_product_by_code(session, "p-001") is None
    assert await resolve_product(session, str(p.id)) == p.id


@pytest.mark.parametrize(
    "raw,expected",
    [(7, ById(7)), ("42", ById(42)), (" 3B7 ", ByCode("3B7")), ("P-001", ByCode("P-001"))],
)
def test_parse_ref(raw, expected):
    assert parse_ref(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "  ", True])
def test_parse_ref_rejects_empty(raw):
    with pytest.raises(ValueError):
        parse_ref(raw)


@pytest.mark.parametrize(
    "raw,expected",
    [
        (MAX_ID, ById(MAX_ID)),
        (MAX_ID + 1, ByCode(str(MAX_ID + 1))),
        (0, ByCode("0")),
        ("7891000100103", ByCode("7891000100103")),
        ("99999999999999999999", ByCode("99999999999999999999")),
    ],
)
def test_parse_ref_numbers_beyond_id_range_are_codes(raw, expected):
    assert parse_ref(raw) == expected


@pytest.mark.asyncio
async def test_resolve_product_by_long_barcode(session):
    p = await make_product(session)

    assert await resolve_product(session, "7891000100103") == p.id
    assert await resolve_product(session, 7891000100103) == p.id


@pytest.mark.asyncio
async def test_resolve_product_oversized_number_not_found(session):
    await make_product(session)

    with pytest.raises(ProductNotFound):
        await resolve_product(session, "99999999999999999999")


@pytest.mark.asyncio
async def test_overdraw_rejection_leaves_session_usable(session, actor_provider):
    p = await make_product(session)
    loc = await make_location(session, "2C5")
    await record_movement(session, _req(quantity=3), actor_provider=actor_provider)

    with pytest.raises(InsufficientStock):
        await record_movement(session, _req(kind="OUT", quantity=4), actor_provider=actor_provider)

    m = await record_movement(session, _req(kind="OUT", quantity=3), actor_provider=actor_provider)
    assert (m.product_id, m.location_id) == (p.id, loc.id)
    assert await derive_stock(session, product_id=p.id, location_id=loc.id) == 0
