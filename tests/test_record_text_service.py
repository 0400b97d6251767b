"""Tests for the record text renderers."""

from jetstream_sync.services import record_text_service as texts
from conftest import sample_tables

OFFER = sample_tables()["jetshare_offers"][0]


class TestOfferText:
    def test_rich_offer_includes_joined_context(self) -> None:
        text = texts.render_offer_text(
            OFFER,
            departure={"city": "New York", "country": "USA"},
            arrival={"city": "Los Angeles", "country": "USA"},
            profile={"email": "sam@example.com"},
        )

        lines = text.splitlines()
        assert lines[0] == "JetShare Offer Information:"
        assert "From: JFK (New York, USA)" in lines
        assert "To: LAX (Los Angeles, USA)" in lines
        assert "Available Seats: 3 of 8" in lines
        assert "Offered By: sam@example.com" in lines
        assert "Cost Per Seat: $12000" in lines

    def test_missing_joined_fields_use_placeholders(self) -> None:
        offer = dict(OFFER, aircraft_model=None)

        text = texts.render_offer_text(offer, departure=None, arrival=None, profile=None)

        assert "From: JFK (Unknown, Unknown)" in text
        assert "Aircraft: Not specified" in text
        assert "Offered By: user-1" in text

    def test_basic_offer_uses_own_fields_in_same_order(self) -> None:
        rich = texts.render_offer_text(OFFER, profile={"email": "sam@example.com"})
        basic = texts.render_offer_text(OFFER, enriched=False)

        assert "User ID: user-1" in basic
        assert "(" not in basic
        labels = lambda t: [line.split(":")[0] for line in t.splitlines()]
        assert labels(basic)[:8] == labels(rich)[:8]

    def test_rendering_is_deterministic(self) -> None:
        assert texts.render_offer_text(OFFER) == texts.render_offer_text(dict(OFFER))


class TestOtherTypes:
    def test_airport_default_description(self) -> None:
        text = texts.render_airport_text({"code": "JFK", "name": "Kennedy", "city": "New York", "country": "USA"})

        assert "IATA Code: JFK" in text
        assert "Description: Kennedy airport located in New York, USA" in text
        assert "Facilities: Not specified" in text

    def test_crew_certifications_are_sorted(self) -> None:
        crew = {"id": "crew-1", "name": "Dana"}
        certs_a = [{"name": "Type Rating G650", "issued_date": "2020"}, {"name": "ATP", "issued_date": "2015"}]
        certs_b = list(reversed(certs_a))

        text_a = texts.render_crew_text(crew, certifications=certs_a, reviews=[{"rating": 4}, {"rating": 5}])
        text_b = texts.render_crew_text(crew, certifications=certs_b, reviews=[{"rating": 5}, {"rating": 4}])

        assert text_a == text_b
        assert "Certifications: ATP (2015), Type Rating G650 (2020)" in text_a
        assert "Rating: 4.5 out of 5 (2 reviews)" in text_a

    def test_basic_crew_omits_joined_sections(self) -> None:
        text = texts.render_crew_text({"id": "crew-1", "name": "Dana"})

        assert "Certifications" not in text
        assert "Rating" not in text
        assert "Role: Unspecified role" in text

    def test_user_enrichment_sections(self) -> None:
        text = texts.render_user_text(
            {"id": "user-1", "first_name": "Sam", "last_name": "Okafor"},
            preferences={"preferred_destinations": ["Nice", "Aspen"]},
            professional={"industry": "Finance", "expertise": ["M&A"]},
            interests=["skiing", "golf"],
            travel_history=[{"origin": "JFK", "destination": "NCE"}, {"origin": "JFK", "destination": "ASE"}],
        )

        assert "Name: Sam Okafor" in text
        assert "Preferred Destinations: Aspen, Nice" in text
        assert "Industry: Finance" in text
        assert "Interests: golf, skiing" in text
        assert "Traveled From: JFK" in text
        assert "Traveled To: ASE, NCE" in text

    def test_simulation_keys_sorted_and_pipeline_columns_dropped(self) -> None:
        text = texts.render_simulation_text({
            "id": "sim-1", "scenario": "spike", "embedding": [0.1], "agents": 4,
            "embedding_updated_at": "2026-01-01",
        })

        assert text.splitlines() == [
            "Simulation Log Information:",
            "ID: sim-1",
            "Agents: 4",
            "Scenario: spike",
        ]

    def test_flight_with_jet(self) -> None:
        text = texts.render_flight_text(
            {"id": "f1", "departure_location": "JFK", "arrival_location": "MIA"},
            jet={"manufacturer": "Gulfstream", "model": "G650", "passenger_capacity": 14},
        )

        assert "Jet: Gulfstream G650" in text
        assert "Jet Capacity: 14 passengers" in text
        assert "Status: Available" in text
