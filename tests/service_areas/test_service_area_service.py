from __future__ import annotations

from datetime import date

import pytest

from core_service.core.enums import AdministrativeLevel, AreaAction, RecordStatus
from core_service.core.exceptions import ConflictError, NotFoundError, ValidationError


def square(min_lon, min_lat, max_lon, max_lat):
    return {
        "type": "Polygon",
        "coordinates": [
            [[min_lon, min_lat], [max_lon, min_lat], [max_lon, max_lat], [min_lon, max_lat], [min_lon, min_lat]]
        ],
    }


@pytest.fixture
def areas(container):
    svc = container.service_area_service
    city = svc.create_area(
        {
            "code": "jkt",
            "name": "Jakarta",
            "level": "city",
            "geometry": square(106, -7, 107, -6),
            "administrative": {"province": "DKI Jakarta", "city": "Jakarta", "postal_codes": ["10110", " "]},
        },
        user_id="admin",
    )
    district = svc.create_area(
        {
            "code": "JKT-GMB",
            "name": "Gambir",
            "level": "district",
            "geometry": square(106.6, -6.4, 106.8, -6.2),
            "administrative": {"province": "DKI Jakarta", "city": "Jakarta", "district": "Gambir"},
        },
        user_id="admin",
    )
    return city, district


def test_create_computes_center_and_history(container, areas):
    city, _ = areas

    assert city.code == "JKT"
    assert city.center == [106.5, -6.5]
    assert city.administrative["postal_codes"] == ["10110"]
    history = container.service_area_service.get_history(city.area_id)
    assert [h.action for h in history] == [AreaAction.CREATE]


def test_create_validation(container, areas):
    svc = container.service_area_service
    with pytest.raises(ConflictError):
        svc.create_area({"code": "JKT", "name": "Dup", "level": "city", "geometry": square(0, 0, 1, 1)}, user_id="admin")
    with pytest.raises(ValidationError):
        svc.create_area({"code": "X" * 11, "name": "Long", "level": "city", "geometry": square(0, 0, 1, 1)}, user_id="admin")
    open_ring = {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 1]]]}
    with pytest.raises(ValidationError):
        svc.create_area({"code": "OPEN", "name": "Open", "level": "city", "geometry": open_ring}, user_id="admin")
    with pytest.raises(ValidationError):
        svc.create_area({"code": "PT", "name": "Point", "level": "city", "geometry": {"type": "Point", "coordinates": [0, 0]}}, user_id="admin")


def test_find_by_point_most_specific_first(container, areas):
    city, district = areas
    svc = container.service_area_service

    assert [a.code for a in svc.find_by_point(106.7, -6.3)] == [district.code, city.code]
    assert [a.code for a in svc.find_by_point("106.2", "-6.9")] == [city.code]
    assert svc.find_by_point(110, -6.5) == []
    with pytest.raises(ValidationError):
        svc.find_by_point(200, 0)

    svc.update_area(district.area_id, {"status": "inactive"}, user_id="admin")
    assert [a.code for a in svc.find_by_point(106.7, -6.3)] == [city.code]


def test_find_near_point(container, areas):
    city, district = areas
    svc = container.service_area_service

    near = svc.find_near_point(106.7, -6.3, 1000)
    assert [n["area"].code for n in near] == [district.code]
    assert near[0]["distance_meters"] == 0

    wide = svc.find_near_point(106.7, -6.3, 50000)
    assert [n["area"].code for n in wide] == [district.code, city.code]


def test_update_records_separate_actions(container, areas):
    city, _ = areas
    svc = container.service_area_service

    updated = svc.update_area(
        city.area_id,
        {"name": "DKI Jakarta", "geometry": square(106, -7, 108, -6), "status": "inactive", "reason": "Expansion"},
        user_id="admin",
    )

    assert updated.center == [107.0, -6.5]
    assert updated.status == RecordStatus.INACTIVE
    actions = {h.action for h in svc.get_history(city.area_id)}
    assert {AreaAction.UPDATE, AreaAction.BOUNDARY_CHANGE, AreaAction.STATUS_CHANGE} <= actions
    boundary = svc.get_history(city.area_id, action="boundary_change")
    assert boundary[0].reason == "Expansion"


def test_list_filters(container, areas):
    svc = container.service_area_service

    assert svc.list_areas(level="district").total == 1
    assert svc.list_areas(city="Jakarta").total == 2
    assert svc.list_areas(search="gambir").items[0].level == AdministrativeLevel.DISTRICT


def test_delete_requires_force_when_in_use(container, org, areas):
    city, _ = areas
    container.pricing_service.create_pricing(
        {"area_id": city.area_id, "service_type": "regular", "base_price": 10000}, user_id="admin"
    )
    container.branch_area_service.assign({"branch_id": org.branch.branch_id, "area_id": city.area_id}, user_id="admin")
    svc = container.service_area_service

    with pytest.raises(ValidationError):
        svc.delete_area(city.area_id, user_id="admin")

    svc.delete_area(city.area_id, force=True, user_id="admin")
    with pytest.raises(NotFoundError):
        svc.get_area(city.area_id)
    assert container.pricing_service.list_pricing() == []
    assert container.branch_area_service.list_by_branch(org.branch.branch_id) == []


def test_pricing_quote(container, areas):
    city, _ = areas
    pricing = container.pricing_service
    entry = pricing.create_pricing(
        {
            "area_id": city.area_id,
            "service_type": "express",
            "base_price": 10000,
            "price_per_km": 2000,
            "price_per_kg": 1000,
            "min_price": 15000,
            "max_price": 50000,
            "insurance_fee": 500,
            "packaging_fee": 1000,
            "effective_from": "2024-01-01",
        },
        user_id="admin",
    )
    assert entry.currency == "IDR"

    on = date(2024, 6, 1)
    quote = pricing.calculate_price(city.area_id, "express", 2, 1, on_date=on)
    assert quote["subtotal"] == 15000
    assert quote["total"] == 16500
    assert pricing.calculate_price(city.area_id, "express", 0, 0, on_date=on)["subtotal"] == 15000
    assert pricing.calculate_price(city.area_id, "express", 30, 0, on_date=on)["total"] == 51500

    with pytest.raises(NotFoundError):
        pricing.calculate_price(city.area_id, "express", 1, 1, on_date=date(2023, 12, 31))
    with pytest.raises(NotFoundError):
        pricing.calculate_price(city.area_id, "regular", 1, 1, on_date=on)
    with pytest.raises(ValidationError):
        pricing.calculate_price(city.area_id, "express", -1, 1, on_date=on)


def test_pricing_validation(container, areas):
    city, district = areas
    pricing = container.pricing_service
    base = {"area_id": city.area_id, "service_type": "regular", "base_price": 10000}

    with pytest.raises(ValidationError):
        pricing.create_pricing({**base, "min_price": 20000, "max_price": 10000}, user_id="admin")
    with pytest.raises(ValidationError):
        pricing.create_pricing({**base, "effective_from": "2024-02-01", "effective_to": "2024-01-01"}, user_id="admin")

    entry = pricing.create_pricing(base, user_id="admin")
    with pytest.raises(ConflictError):
        pricing.create_pricing(base, user_id="admin")

    other = pricing.create_pricing({**base, "area_id": district.area_id}, user_id="admin")
    with pytest.raises(ConflictError):
        pricing.update_pricing(other.pricing_id, {"area_id": city.area_id}, user_id="admin")

    assert pricing.update_pricing(entry.pricing_id, {"base_price": 12000}, user_id="admin").base_price == 12000
    with pytest.raises(NotFoundError):
        pricing.create_pricing({**base, "area_id": 999}, user_id="admin")


def test_forced_delete_is_all_or_nothing(container, repos, org, areas, monkeypatch):
    city, _ = areas
    container.pricing_service.create_pricing(
        {"area_id": city.area_id, "service_type": "regular", "base_price": 10000}, user_id="admin"
    )
    container.branch_area_service.assign({"branch_id": org.branch.branch_id, "area_id": city.area_id}, user_id="admin")

    def broken_delete(item_id):
        raise RuntimeError("area store unavailable")

    monkeypatch.setattr(repos.service_areas, "delete", broken_delete)
    with pytest.raises(RuntimeError):
        container.service_area_service.delete_area(city.area_id, force=True, user_id="admin")
    monkeypatch.undo()

    assert container.service_area_service.get_area(city.area_id).code == city.code
    assert len(container.pricing_service.list_pricing()) == 1
    assert len(container.branch_area_service.list_by_branch(org.branch.branch_id)) == 1
