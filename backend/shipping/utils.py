from typing import Optional
from backend.shipping.constants import MIN_WEIGHT_GRAMS


def weight_to_grams(weight_kg: Optional[str]) -> int:
    """Carrier expects grams , anything unparseable or lighter than the minimum becomes the minimum."""
    if not weight_kg:
        return MIN_WEIGHT_GRAMS
    try:
        grams = int(float(weight_kg) * 1000)
    except ValueError:
        return MIN_WEIGHT_GRAMS
    return max(grams, MIN_WEIGHT_GRAMS)


def extract_shipment_id(result: dict) -> Optional[int]:
    # adhoc create answers with shipment_id at the top level , some accounts nest it under payload
    for source in (result, result.get("payload") if isinstance(result.get("payload"), dict) else {}):
        value = source.get("shipment_id")
        if value:
            try:
                return int(value)
            except (TypeError, ValueError):
                return None
    return None


def extract_awb(result: dict) -> Optional[str]:
    response = result.get("response")
    if not isinstance(response, dict):
        return None
    data = response.get("data")
    if not isinstance(data, dict):
        return None
    awb = data.get("awb_code")
    return str(awb) if awb else None


def extract_label_url(result: dict) -> Optional[str]:
    url = result.get("label_url")
    return url if isinstance(url, str) and url else None
