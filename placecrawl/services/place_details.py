import logging
from typing import Any, Optional

from placecrawl.domain.place import PlaceDetails
from placecrawl.exceptions import PlaceDataFormatError
from placecrawl.services.wire_layout import WireLayout, get_wire_layout
from placecrawl.utils.nested import is_number, safe_get

logger = logging.getLogger(__name__)

DAYS = ["Su", "Mo", "Tu", "We", "Th", "Fr", "Sa"]

CREDIT_CARDS_OPTION = "/geo/type/establishment_poi/pay_credit_card_types_accepted"
WIFI_OPTION = "/geo/type/establishment_poi/wi_fi"


def extract_opening_hours(place: Any, layout: Optional[WireLayout] = None) -> Optional[list[dict[str, str]]]:
    """Opening hours as [{"day": "Monday,", "hours": "9 AM to 5 PM"}], or None.

    The day keeps a trailing comma and the range dash becomes " to ", which
    is how the hours read when scraped from the rendered page.
    """
    layout = layout or get_wire_layout()
    entries = safe_get(place, layout.opening_hours_index, 1)
    if not safe_get(entries, 0) or not safe_get(entries, 1):
        return None
    result = []
    for entry in entries:
        day = safe_get(entry, 0)
        intervals = safe_get(entry, 1)
        if not isinstance(day, str) or not isinstance(intervals, list):
            raise PlaceDataFormatError("wrong format for opening hours entry")
        result.append({
            "day": f"{day},",
            "hours": ", ".join(str(i).replace("–", " to ") for i in intervals),
        })
    return result


def extract_popular_times(place: Any, layout: Optional[WireLayout] = None) -> dict[str, Any]:
    layout = layout or get_wire_layout()
    data = safe_get(place, layout.popular_times_index)
    if not data:
        return {}

    # Live data is missing outside opening hours
    output: dict[str, Any] = {
        "popular_times_live_text": safe_get(data, 6) or None,
        "popular_times_live_percent": safe_get(data, 7, 1) or None,
        "popular_times_histogram": {},
    }
    # Producer format is [day][1][hour] -> [hour, occupancy]
    days_data = safe_get(data, 0)
    if not isinstance(days_data, list):
        return output
    for i, day_data in enumerate(days_data[: len(DAYS)]):
        hours = []
        hour_rows = safe_get(day_data, 1)
        for hour_data in hour_rows if isinstance(hour_rows, list) else []:
            hours.append({"hour": safe_get(hour_data, 0), "occupancy_percent": safe_get(hour_data, 1)})
        output["popular_times_histogram"][DAYS[i]] = hours
    return output


def _basic_option_values(option: Any) -> list[dict[str, bool]]:
    name = safe_get(option, 1)
    if not isinstance(name, str):
        raise PlaceDataFormatError("wrong format for option name")
    flag = safe_get(option, 2, 2, 0)
    if is_number(flag):
        return [{name: flag == 1}]
    # Accepted card types are listed even though the page does not show them
    if safe_get(option, 0) == CREDIT_CARDS_OPTION:
        accepted = safe_get(option, 2, 4, 1, 0, 0)
        if not isinstance(accepted, list):
            raise PlaceDataFormatError(f"{name}: wrong format for accepted cards")
        first = safe_get(accepted, 0)
        return [{name: isinstance(first, list) and len(first) >= 4}]
    if safe_get(option, 0) == WIFI_OPTION:
        if not isinstance(safe_get(option, 2, 3), list):
            raise PlaceDataFormatError("wrong format for wifi options")
        values = []
        for wifi_option in option[2][3:]:
            label = safe_get(wifi_option, 2)
            if not isinstance(label, str):
                raise PlaceDataFormatError("wrong format for wifi option")
            values.append({label: True})
        return values
    raise PlaceDataFormatError(f"{name}: wrong format for option value")


def _extract_basic_info(place: Any, layout: WireLayout) -> Optional[dict[str, list]]:
    data = safe_get(place, layout.additional_info_index)
    if not data:
        return None
    if not safe_get(data, 1, 0, 1) or not isinstance(safe_get(data, 1, 0, 2), list):
        raise PlaceDataFormatError("wrong format")
    result = {}
    for section in data[1]:
        title = safe_get(section, 1)
        options = safe_get(section, 2)
        if not isinstance(title, str) or not isinstance(options, list):
            raise PlaceDataFormatError("wrong format for section")
        values = []
        for option in options:
            values.extend(_basic_option_values(option))
        result[title] = values
    return result


def _extract_hotel_amenities(place: Any, layout: WireLayout) -> Optional[dict[str, list]]:
    # A missing section is usually null, but sometimes a flat array of nulls
    amenities = safe_get(place, layout.hotel_amenities_index, 2)
    if not safe_get(amenities, 0):
        return None
    if not safe_get(amenities, 0, 2) or not is_number(safe_get(amenities, 0, 3)):
        raise PlaceDataFormatError("wrong format for hotel amenities")
    return {
        "Amenities": [
            {safe_get(option, 2): safe_get(option, 3) == 1}
            for option in amenities
            if isinstance(safe_get(option, 2), str)
        ]
    }


def extract_additional_info(place: Any, layout: Optional[WireLayout] = None) -> Optional[dict[str, list]]:
    """Merge the basic attribute sections with hotel amenities.

    Raises PlaceDataFormatError when either section is present but malformed.
    """
    layout = layout or get_wire_layout()
    basic = _extract_basic_info(place, layout)
    hotel = _extract_hotel_amenities(place, layout)
    if basic and hotel:
        if "Amenities" in basic:
            basic["Amenities"] = basic["Amenities"] + hotel["Amenities"]
            return basic
        return {**basic, **hotel}
    return basic if basic else hotel


def extract_place_details(place: Any, layout: Optional[WireLayout] = None) -> PlaceDetails:
    """Extract every detail section, tolerating malformed ones."""
    layout = layout or get_wire_layout()
    opening_hours = None
    additional_info = None
    try:
        opening_hours = extract_opening_hours(place, layout)
    except PlaceDataFormatError as e:
        logger.warning("[PLACE]: Couldn't extract opening hours from place data: %s", e)
    try:
        additional_info = extract_additional_info(place, layout)
    except PlaceDataFormatError as e:
        logger.warning("[PLACE]: Couldn't extract additional info from place data: %s", e)
    popular_times = extract_popular_times(place, layout) or None
    return PlaceDetails(
        opening_hours=opening_hours,
        popular_times=popular_times,
        additional_info=additional_info,
    )
