"""
Tests for record normalization.
"""
from datetime import datetime, timezone

import pytest

from src.database.normalization import (
    calculate_initial_trust_score,
    clean_email,
    clean_person_name,
    clean_phone,
    clean_text,
    default_position,
    extract_bill_number,
    infer_bill_category,
    infer_jurisdiction,
    infer_level,
    infer_topics,
    is_political_content,
    normalize_bill,
    normalize_bill_status,
    normalize_election,
    normalize_official,
    normalize_party,
    normalize_statement,
    normalize_vote,
    parse_count,
    parse_date,
)
from src.models.source import GovernmentLevel

from tests.conftest import make_source


class TestTextCleaning:
    def test_collapses_whitespace(self):
        assert clean_text("  Jane\n\t Doe  ") == "Jane Doe"

    def test_normalizes_dashes_and_strips_symbols(self):
        assert clean_text("Nepean–Carleton *") == "Nepean-Carleton"

    def test_person_name_drops_honorifics(self):
        assert clean_person_name("The Hon. Chrystia Freeland") == "Chrystia Freeland"
        assert clean_person_name("Right Honourable Justin Trudeau") == "Justin Trudeau"
        assert clean_person_name("Jane Doe:") == "Jane Doe"

    def test_email(self):
        assert clean_email("mailto:Jane.Doe@OLA.org?subject=Hi") == "jane.doe@ola.org"
        assert clean_email("no address here") is None
        assert clean_email(None) is None

    def test_phone(self):
        assert clean_phone("416.555.0100") == "(416) 555-0100"
        assert clean_phone("tel:+1-416-555-0100") == "(416) 555-0100"
        assert clean_phone("ext. 12") == "ext. 12"
        assert clean_phone("") is None

    def test_count(self):
        assert parse_count("Yeas: 1,172") == 1172
        assert parse_count("none") == 0


class TestDates:
    def test_iso(self):
        assert parse_date("2024-03-05") == datetime(2024, 3, 5, tzinfo=timezone.utc)

    def test_long_form_with_ordinal(self):
        assert parse_date("March 5th, 2024") == datetime(2024, 3, 5, tzinfo=timezone.utc)

    def test_rfc822(self):
        assert parse_date("Tue, 05 Mar 2024 14:30:00 GMT") == datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc)

    def test_iso_inside_text(self):
        assert parse_date("Introduced 2024-03-05 by the minister") == datetime(2024, 3, 5, tzinfo=timezone.utc)

    def test_unparseable(self):
        assert parse_date("sometime soon") is None
        assert parse_date("") is None


class TestJurisdictionAndLevel:
    @pytest.mark.parametrize("url, expected", [
        ("https://www.ola.org/en/members/current", "Ontario"),
        ("https://www.ourcommons.ca/members/en", "Canada"),
        ("https://www.assnat.qc.ca/en/deputes/", "Quebec"),
        ("https://www.toronto.ca/city-government/council/", "Toronto"),
        ("https://ville.quebec.qc.ca/conseil", "Quebec City"),
        ("https://lop.parl.ca/sites/LegisInfo", "Canada"),
    ])
    def test_known_domains(self, url, expected):
        assert infer_jurisdiction(url) == expected

    def test_unknown_domain_is_sentinel(self):
        assert infer_jurisdiction("https://example.com/members") == "Unknown"
        assert infer_jurisdiction(None) == "Unknown"

    def test_level_from_position(self):
        assert infer_level("Senator") == GovernmentLevel.FEDERAL
        assert infer_level("MPP for Ottawa Centre") == GovernmentLevel.PROVINCIAL
        assert infer_level("Deputy Mayor") == GovernmentLevel.MUNICIPAL

    def test_level_falls_back_to_default(self):
        assert infer_level(None, default=GovernmentLevel.PROVINCIAL) == GovernmentLevel.PROVINCIAL
        assert infer_level("Member", default=GovernmentLevel.MUNICIPAL) == GovernmentLevel.MUNICIPAL

    @pytest.mark.parametrize("level, jurisdiction, expected", [
        (GovernmentLevel.PROVINCIAL, "Ontario", "MPP"),
        (GovernmentLevel.PROVINCIAL, "Quebec", "MNA"),
        (GovernmentLevel.PROVINCIAL, "Newfoundland and Labrador", "MHA"),
        (GovernmentLevel.PROVINCIAL, "Alberta", "MLA"),
        (GovernmentLevel.MUNICIPAL, "Toronto", "Councillor"),
        (GovernmentLevel.FEDERAL, "Canada", "MP"),
    ])
    def test_default_position(self, level, jurisdiction, expected):
        assert default_position(level, jurisdiction) == expected

    def test_trust_score(self):
        assert calculate_initial_trust_score("MPP", GovernmentLevel.PROVINCIAL) == 75
        assert calculate_initial_trust_score("MP", GovernmentLevel.FEDERAL) == 80
        assert calculate_initial_trust_score("Prime Minister", GovernmentLevel.FEDERAL) == 90
        assert calculate_initial_trust_score("Mayor", GovernmentLevel.MUNICIPAL) == 87


class TestParties:
    @pytest.mark.parametrize("raw, expected", [
        ("Liberal", "Liberal"),
        ("Liberal Party of Canada", "Liberal"),
        ("New Democratic Party", "NDP"),
        ("Progressive Conservative Party of Ontario", "Progressive Conservative"),
        ("Conservative", "Conservative"),
        ("Bloc Québécois", "Bloc Québécois"),
        ("Coalition Avenir Québec", "CAQ"),
        ("Ind.", "Independent"),
    ])
    def test_known_labels(self, raw, expected):
        assert normalize_party(raw) == expected

    def test_unknown_label_is_kept(self):
        assert normalize_party("Rhinoceros Party") == "Rhinoceros Party"

    def test_empty_is_none(self):
        assert normalize_party("") is None
        assert normalize_party(None) is None


class TestBills:
    def test_federal_number(self):
        assert extract_bill_number("Bill C-69, An Act to enact the Impact Assessment Act") == "C-69"
        assert extract_bill_number("s-12") == "S-12"

    def test_provincial_number_is_qualified(self):
        assert extract_bill_number("Bill 23", "Ontario") == "ON-23"
        assert extract_bill_number("Bill No. 7", "Alberta") == "AB-7"

    def test_plain_number_without_province_is_rejected(self):
        assert extract_bill_number("Bill 23") is None
        assert extract_bill_number("Bill 23", "Toronto") is None

    def test_category(self):
        assert infer_bill_category("An Act to Amend the Income Tax Act") == "Finance & Economy"
        assert infer_bill_category("Online Harms Act") == "Technology"
        assert infer_bill_category("An Act respecting National Lighthouse Day") == "General Legislation"

    def test_category_falls_back_to_summary(self):
        assert infer_bill_category("Bill C-5", "Amends the Criminal Code") == "Justice"

    def test_status(self):
        assert normalize_bill_status("Passed third reading") == "Third Reading"
        assert normalize_bill_status("Royal assent received") == "Royal Assent"
        assert normalize_bill_status("") is None

    def test_normalize_bill(self):
        source = make_source()
        bill = normalize_bill(
            {"bill_number": "Bill 23", "title": "More Homes Built Faster Act", "status": "First Reading"},
            source,
            "https://www.ola.org/en/legislative-business/bills",
        )

        assert bill.bill_number == "ON-23"
        assert bill.jurisdiction == "Ontario"
        assert bill.category == "General Legislation"
        assert bill.status == "First Reading"

    def test_normalize_bill_without_number(self):
        with pytest.raises(ValueError):
            normalize_bill({"title": "Untitled"}, make_source(), "https://www.ola.org/bills")


class TestOfficials:
    def test_normalize_official(self, ontario_source):
        official = normalize_official(
            {"name": "Jane Doe", "party": "Liberal", "constituency": "Test Riding",
             "email": "mailto:jane@ola.org", "phone": "4165550100"},
            ontario_source,
            "https://www.ola.org/en/members/current",
        )

        assert official.name == "Jane Doe"
        assert official.jurisdiction == "Ontario"
        assert official.level == GovernmentLevel.PROVINCIAL
        assert official.party == "Liberal"
        assert official.position is None
        assert official.contact.email == "jane@ola.org"
        assert official.contact.phone == "(416) 555-0100"
        assert official.trust_score == 75
        assert official.source_name == ontario_source.name

    def test_position_overrides_source_level(self, ontario_source):
        official = normalize_official({"name": "Olivia Chow", "position": "Mayor"}, ontario_source)
        assert official.level == GovernmentLevel.MUNICIPAL

    def test_unknown_domain_keeps_record(self):
        source = make_source(base_url="https://example.com")
        official = normalize_official({"name": "Jane Doe"}, source, "https://example.com/members")
        assert official.jurisdiction == "Unknown"

    @pytest.mark.parametrize("name", ["", "Al", None])
    def test_short_name_is_rejected(self, ontario_source, name):
        with pytest.raises(ValueError):
            normalize_official({"name": name}, ontario_source)


class TestOtherRecords:
    def test_vote(self):
        source = make_source(
            name="House of Commons",
            base_url="https://www.ourcommons.ca",
            level=GovernmentLevel.FEDERAL,
            jurisdiction="Canada",
        )
        vote = normalize_vote(
            {"bill_number": "C-21", "vote_date": "2024-03-05", "result": "Agreed to",
             "yes_votes": "172", "no_votes": "148"},
            source,
            "https://www.ourcommons.ca/members/en/votes",
        )

        assert vote.bill_number == "C-21"
        assert vote.chamber == "House of Commons"
        assert vote.yes_votes == 172
        assert vote.passed

    def test_vote_without_bill_is_rejected(self, ontario_source):
        with pytest.raises(ValueError):
            normalize_vote({"bill_number": "Motion 12"}, ontario_source)

    def test_statement(self, ontario_source):
        statement = normalize_statement(
            {"speaker": "The Hon. Jane Doe:", "content": "  Housing matters.  "},
            ontario_source,
            "https://www.ola.org/en/hansard",
        )

        assert statement.speaker_name == "Jane Doe"
        assert statement.content == "Housing matters."
        assert statement.jurisdiction == "Ontario"
        assert len(statement.content_hash) == 64

    def test_by_election_type(self):
        source = make_source(base_url="https://www.elections.ca", level=GovernmentLevel.FEDERAL, jurisdiction="Canada")
        election = normalize_election({"name": "Toronto-St. Paul's by-election", "date": "June 24, 2024"}, source)

        assert election.election_type == "By-election"
        assert election.jurisdiction == "Canada"


class TestTopics:
    def test_infer_topics(self):
        assert infer_topics("Hospital wait times and the health budget")[0] == "Healthcare"
        assert infer_topics("A lovely day at the beach") == ["General"]
        assert infer_topics(None) == ["General"]

    def test_political_filter(self):
        assert is_political_content("The premier announced a new policy")
        assert not is_political_content("Maple Leafs win in overtime", "Hockey recap")
