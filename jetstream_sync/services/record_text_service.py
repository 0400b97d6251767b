"""Text renderers for embeddable records.

Each renderer is a pure function of the row and whatever joined context the
caller managed to load. Joined arguments left as ``None`` mean the join was not
attempted (basic path); their lines are omitted rather than filled with
placeholders. Field order is fixed and every list is sorted so the same row
always renders to the same text.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

UNKNOWN = "Unknown"
NOT_SPECIFIED = "Not specified"

# Columns written by the pipeline itself; never part of the rendered content
PIPELINE_COLUMNS = {"embedding", "embedding_updated_at"}


def _value(value: Any, placeholder: str = UNKNOWN) -> str:
    if value is None or value == "" or value == [] or value == {}:
        return placeholder
    if isinstance(value, (list, tuple, set)):
        return _join(value, placeholder)
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def _join(values: Iterable[Any], placeholder: str = NOT_SPECIFIED) -> str:
    items = sorted({str(v) for v in values if v is not None and v != ""})
    return ", ".join(items) if items else placeholder


def render_offer_text(offer: Dict[str, Any],
                      departure: Optional[Dict[str, Any]] = None,
                      arrival: Optional[Dict[str, Any]] = None,
                      profile: Optional[Dict[str, Any]] = None,
                      enriched: bool = True) -> str:
    """
    Render a JetShare offer.

    With ``enriched`` the route lines carry airport city and country and the
    offer is attributed to the owning profile's email. Without it only the
    offer's own columns are used.
    """
    departure_code = _value(offer.get("departure_location"))
    arrival_code = _value(offer.get("arrival_location"))

    lines = [
        "JetShare Offer Information:",
        f"ID: {offer.get('id')}",
        f"Status: {_value(offer.get('status'))}",
    ]

    if enriched:
        departure = departure or {}
        arrival = arrival or {}
        lines.append(f"From: {departure_code} ({_value(departure.get('city'))}, {_value(departure.get('country'))})")
        lines.append(f"To: {arrival_code} ({_value(arrival.get('city'))}, {_value(arrival.get('country'))})")
    else:
        lines.append(f"From: {departure_code}")
        lines.append(f"To: {arrival_code}")

    lines.append(f"Date: {_value(offer.get('flight_date'), NOT_SPECIFIED)}")
    lines.append(f"Aircraft: {_value(offer.get('aircraft_model'), NOT_SPECIFIED)}")
    lines.append(f"Total Cost: ${_value(offer.get('total_flight_cost'), NOT_SPECIFIED)}")

    if enriched:
        lines.append(f"Available Seats: {_value(offer.get('available_seats'))} of {_value(offer.get('total_seats'))}")
    else:
        lines.append(f"Available Seats: {_value(offer.get('available_seats'))}")

    lines.append(f"Cost Per Seat: ${_value(offer.get('requested_share_amount'), NOT_SPECIFIED)}")

    if enriched:
        offered_by = (profile or {}).get("email") or offer.get("user_id")
        lines.append(f"Offered By: {_value(offered_by)}")
    else:
        lines.append(f"User ID: {_value(offer.get('user_id'))}")

    lines.append(f"Created: {_value(offer.get('created_at'))}")
    return "\n".join(lines)


def render_flight_text(flight: Dict[str, Any], jet: Optional[Dict[str, Any]] = None) -> str:
    lines = [
        "Flight Information:",
        f"ID: {flight.get('id')}",
        f"From: {_value(flight.get('departure_location') or flight.get('origin_airport'))}",
        f"To: {_value(flight.get('arrival_location') or flight.get('destination_airport'))}",
        f"Date: {_value(flight.get('flight_date') or flight.get('departure_time'), NOT_SPECIFIED)}",
        f"Aircraft: {_value(flight.get('aircraft_model'), NOT_SPECIFIED)}",
        f"Total Cost: ${_value(flight.get('total_flight_cost') or flight.get('base_price'), NOT_SPECIFIED)}",
        f"Available Seats: {_value(flight.get('available_seats'), NOT_SPECIFIED)}",
        f"Status: {_value(flight.get('status'), 'Available')}",
    ]
    if jet is not None:
        lines.append(f"Jet: {_value(jet.get('manufacturer'))} {_value(jet.get('model'))}")
        lines.append(f"Jet Capacity: {_value(jet.get('passenger_capacity') or jet.get('capacity'))} passengers")
        lines.append(f"Jet Features: {_value(jet.get('features') or jet.get('amenities'), NOT_SPECIFIED)}")
    return "\n".join(lines)


def render_airport_text(airport: Dict[str, Any]) -> str:
    name = _value(airport.get("name"))
    city = _value(airport.get("city"))
    country = _value(airport.get("country"))
    description = airport.get("description") or f"{name} airport located in {city}, {country}"
    return "\n".join([
        "Airport Information:",
        f"Name: {name}",
        f"IATA Code: {airport.get('code')}",
        f"Location: {city}, {country}",
        f"Facilities: {_value(airport.get('facilities'), NOT_SPECIFIED)}",
        f"Description: {description}",
    ])


def render_aircraft_text(jet: Dict[str, Any]) -> str:
    return "\n".join([
        "Jet Information:",
        f"ID: {jet.get('id')}",
        f"Model: {_value(jet.get('model'))}",
        f"Manufacturer: {_value(jet.get('manufacturer'))}",
        f"Range: {_value(jet.get('range'))} miles",
        f"Passenger Capacity: {_value(jet.get('passenger_capacity') or jet.get('capacity'))} passengers",
        f"Cruise Speed: {_value(jet.get('cruise_speed'))} mph",
        f"Features: {_value(jet.get('features') or jet.get('amenities'), NOT_SPECIFIED)}",
    ])


def render_crew_text(crew: Dict[str, Any],
                     certifications: Optional[List[Dict[str, Any]]] = None,
                     reviews: Optional[List[Dict[str, Any]]] = None) -> str:
    lines = [
        "Crew Information:",
        f"ID: {crew.get('id')}",
        f"Name: {_value(crew.get('name'))}",
        f"Role: {_value(crew.get('role'), 'Unspecified role')}",
        f"Experience: {crew.get('experience_years') or 0} years",
        f"Bio: {_value(crew.get('bio'), 'No bio provided')}",
        f"Specialties: {_value(crew.get('specialties'), 'None listed')}",
        f"Languages: {_value(crew.get('languages'), NOT_SPECIFIED)}",
        f"Available: {'Yes' if crew.get('is_available') else 'No'}",
        f"Home Base: {_value(crew.get('home_base'), NOT_SPECIFIED)}",
    ]

    if reviews is not None:
        ratings = [r.get("rating") or 0 for r in reviews]
        average = sum(ratings) / len(ratings) if ratings else 0.0
        lines.append(f"Rating: {average:.1f} out of 5 ({len(ratings)} reviews)")

    if certifications is not None:
        rendered = [
            f"{_value(c.get('name'))} ({_value(c.get('issued_date'), NOT_SPECIFIED)})"
            for c in certifications
        ]
        lines.append(f"Certifications: {_join(rendered, 'No certifications recorded')}")

    return "\n".join(lines)


def render_user_text(profile: Dict[str, Any],
                     preferences: Optional[Dict[str, Any]] = None,
                     professional: Optional[Dict[str, Any]] = None,
                     interests: Optional[List[str]] = None,
                     travel_history: Optional[List[Dict[str, Any]]] = None) -> str:
    """
    Render a user profile.

    Enrichment sections (preferences, professional details, interests, travel
    history) follow the profile's own fields and appear only when loaded.
    """
    full_name = " ".join(
        part for part in [profile.get("first_name"), profile.get("last_name")] if part
    )
    lines = [
        "User Profile Information:",
        f"ID: {profile.get('id')}",
        f"Name: {full_name or 'Anonymous'}",
        f"Email: {_value(profile.get('email'), 'Not provided')}",
        f"Role: {_value(profile.get('role'), 'user')}",
        f"Location: {_value(profile.get('location'), NOT_SPECIFIED)}",
        f"Bio: {_value(profile.get('bio'), 'No bio provided')}",
        f"Verified: {'Yes' if profile.get('is_verified') else 'No'}",
        f"Member Since: {_value(profile.get('created_at'))}",
    ]

    if professional is not None:
        lines.append(f"Industry: {_value(professional.get('industry'), NOT_SPECIFIED)}")
        lines.append(f"Job Title: {_value(professional.get('job_title'), NOT_SPECIFIED)}")
        lines.append(f"Company: {_value(professional.get('company'), NOT_SPECIFIED)}")
        lines.append(f"Expertise: {_join(professional.get('expertise') or [])}")

    if preferences is not None:
        lines.append(f"Preferred Destinations: {_join(preferences.get('preferred_destinations') or [])}")
        lines.append(f"Travel Interests: {_join(preferences.get('travel_interests') or [])}")
        lines.append(f"Trip Types: {_join(preferences.get('trip_types') or [])}")
        lines.append(f"Languages: {_join(preferences.get('languages') or [])}")

    if interests is not None:
        lines.append(f"Interests: {_join(interests)}")

    if travel_history is not None:
        origins = _join(h.get("origin") for h in travel_history)
        destinations = _join(h.get("destination") for h in travel_history)
        lines.append(f"Traveled From: {origins}")
        lines.append(f"Traveled To: {destinations}")

    return "\n".join(lines)


def render_simulation_text(log: Dict[str, Any]) -> str:
    """Simulation logs have no fixed schema; render every content column in key order"""
    lines = ["Simulation Log Information:", f"ID: {log.get('id')}"]
    for key in sorted(log):
        if key == "id" or key in PIPELINE_COLUMNS:
            continue
        label = key.replace("_", " ").title()
        lines.append(f"{label}: {_value(log[key], NOT_SPECIFIED)}")
    return "\n".join(lines)
