import pytest
from backend.shipping.utils import extract_awb, extract_shipment_id, weight_to_grams
from tests.conftest import url_prefix


def test_weight_is_converted_to_grams_with_a_floor():
    assert weight_to_grams("1.2") == 1200
    assert weight_to_grams("0.1") == 500
    assert weight_to_grams(None) == 500
    assert weight_to_grams("heavy") == 500


def test_carrier_response_extraction():
    assert extract_shipment_id({"shipment_id": 10}) == 10
    assert extract_shipment_id({"payload": {"shipment_id": "11"}}) == 11
    assert extract_shipment_id({"status": "NEW"}) is None
    assert extract_awb({"response": {"data": {"awb_code": "A1"}}}) == "A1"
    assert extract_awb({"response": "oops"}) is None


@pytest.mark.asyncio
async def test_unconfigured_carrier_quotes_default_rates(ac_client):
    resp = await ac_client.get(f"{url_prefix}/shipping/calculate-rates")
    assert resp.status_code == 200
    rates = resp.json()["data"]["rates"]
    assert [(r["courier_name"], r["rate"], r["estimated_days"]) for r in rates] == [
        ("Standard Shipping", 150, 5), ("Express Shipping", 300, 2)]


@pytest.mark.asyncio
async def test_configured_carrier_needs_both_pins(ac_client, shiprocket_gateway):
    resp = await ac_client.get(f"{url_prefix}/shipping/calculate-rates", params={"pickup_pin": "190001"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_configured_carrier_rates_are_mapped(ac_client, shiprocket_gateway, shiprocket_log):
    resp = await ac_client.get(f"{url_prefix}/shipping/calculate-rates",
                               params={"pickup_pin": "190001", "delivery_pin": "110001", "weight": "0.2"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["rates"] == [{
        "courier_name": "Delhivery", "rate": 95.5, "currency": "INR", "estimated_days": "4",
        "service_type": "surface", "courier_company_id": 12}]
    assert shiprocket_log.count("/courier/serviceability/") == 1


@pytest.mark.asyncio
async def test_tracking_without_carrier_is_unavailable(ac_client):
    resp = await ac_client.get(f"{url_prefix}/shipping/track/AWB1")
    assert resp.status_code == 503


@pytest.mark.asyncio
async def test_admin_lists_pickup_locations(ac_client, admin_headers, shiprocket_gateway, shiprocket_log):
    resp = await ac_client.get(f"{url_prefix}/admin/shipping/pickup-locations", headers=admin_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["locations"] == [{"pickup_location": "Primary", "pin_code": "190001"}]
    assert shiprocket_log.count("/settings/company/pickup") == 1


@pytest.mark.asyncio
async def test_pickup_locations_need_admin_and_a_carrier(ac_client, user_headers, admin_headers):
    resp = await ac_client.get(f"{url_prefix}/admin/shipping/pickup-locations", headers=user_headers)
    assert resp.status_code == 403

    resp = await ac_client.get(f"{url_prefix}/admin/shipping/pickup-locations", headers=admin_headers)
    assert resp.status_code == 503
