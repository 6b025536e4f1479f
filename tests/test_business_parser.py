import pytest

from sources.wetaskiwin_business.parser import (
    categorize_business,
    extract_address,
    extract_phone,
    normalize_phone,
    parse_business_block,
    reinsert_spaces,
    split_name_contact,
)
from sources.wetaskiwin_business.vocabulary import BUSINESS_SUFFIXES, STREET_TYPES

SOURCE = "https://www.wetaskiwin.ca/businessdirectoryii.aspx"


@pytest.mark.parametrize("raw", ["780.352.1234", "780 352 1234", "780-352-1234", "7803521234"])
def test_phone_variants_normalize(raw):
    assert normalize_phone(raw) == "780-352-1234"


def test_phone_clause_and_trailing_fields_removed():
    phone, rest = extract_phone("Acme Ltd 1 Main Street Phone: 780.352.1234 Fax: 780.352.9999")
    assert phone == "780-352-1234"
    assert rest == "Acme Ltd 1 Main Street"


def test_no_phone():
    assert extract_phone("Acme Ltd") == (None, "Acme Ltd")


@pytest.mark.parametrize(
    "text,name,contact",
    [
        ("Acme Fence & Welding Ltd. Larry", "Acme Fence & Welding Ltd.", "Larry"),
        ("AEM Fabrication Ltd", "AEM Fabrication Ltd", ""),
        ("Wetaskiwin Auto Sales Bob and Mary", "Wetaskiwin Auto Sales", "Bob and Mary"),
        ("Northern Lights Bakery Sue McTavish", "Northern Lights Bakery", "Sue McTavish"),
        ("Route 13 Dave Smith", "Route 13", "Dave Smith"),
        ("Twisted Sisters", "Twisted", "Sisters"),
        ("HOME HARDWARE", "HOME HARDWARE", ""),
    ],
)
def test_split_name_contact(text, name, contact):
    assert split_name_contact(text) == (name, contact)


def test_glued_contact_split_after_space_reinsertion():
    spaced = reinsert_spaces("Amen Thrift ShopTammy Becsko")
    assert spaced == "Amen Thrift Shop Tammy Becsko"
    assert split_name_contact(spaced) == ("Amen Thrift Shop", "Tammy Becsko")


def test_reinsertion_keeps_mc_surnames():
    assert reinsert_spaces("McDonald's Restaurant") == "McDonald's Restaurant"
    assert reinsert_spaces("MacLeod Law OfficeJohn") == "MacLeod Law Office John"


def test_reinsertion_splits_caps_run():
    assert reinsert_spaces("Prairie CustomsRVG") == "Prairie Customs RVG"


def test_address_extracted_and_cleaned():
    address, rest = extract_address("Acme Ltd 4702 51 AvenueWetaskiwin, AB T9A 0V4")
    assert address == "4702 51 Avenue Wetaskiwin, AB T9A 0V4"
    assert rest == "Acme Ltd"


def test_address_with_unit():
    address, _ = extract_address("Hair Studio #2 5015 50 Street Wetaskiwin, AB T9A 1J3")
    assert address == "#2 5015 50 Street Wetaskiwin, AB T9A 1J3"


@pytest.mark.parametrize(
    "text",
    [
        "Acme Ltd 4702 51 Wetaskiwin, AB T9A 0V4",  # no street type
        "Acme Ltd 4702 51 Avenue Wetaskiwin",  # no province/postal
        "Acme Ltd 4702 51 Avenue Camrose, AB T4V 1X7",  # other city
    ],
)
def test_incomplete_address_rejected(text):
    assert extract_address(text) == (None, text)


def test_parse_full_row():
    record = parse_business_block(
        "Acme Fence & Welding Ltd. Larry 4702 51 Avenue Wetaskiwin, AB T9A 0V4 Phone: 780.352.1234",
        SOURCE,
    )
    assert record.name == "Acme Fence & Welding Ltd."
    assert record.contact == "Larry"
    assert record.phone == "780-352-1234"
    assert record.address == "4702 51 Avenue Wetaskiwin, AB T9A 0V4"
    assert record.source_url == SOURCE


def test_parse_glued_row():
    record = parse_business_block(
        "Amen Thrift ShopTammy Becsko4702 51 AvenueWetaskiwin, AB T9A 0V4Phone: 780-352-1234",
        SOURCE,
    )
    assert record.name == "Amen Thrift Shop"
    assert record.contact == "Tammy Becsko"
    assert record.category == "retail"
    assert record.name_key == "amen thrift shop"


def test_row_without_phone():
    record = parse_business_block("AEM Fabrication Ltd 5502 36 Avenue Wetaskiwin, AB T9A 3C7", SOURCE)
    assert record.name == "AEM Fabrication Ltd"
    assert record.contact == ""
    assert record.phone is None


def test_row_without_address_is_unparseable():
    assert parse_business_block("Acme Fence & Welding Ltd. Larry Phone: 780-352-1234", SOURCE) is None


def test_row_with_only_an_address_is_unparseable():
    assert parse_business_block("4702 51 Avenue Wetaskiwin, AB T9A 0V4", SOURCE) is None


def test_vocabulary_tables():
    assert len(BUSINESS_SUFFIXES) >= 90
    assert len(set(BUSINESS_SUFFIXES)) == len(BUSINESS_SUFFIXES)
    assert "Avenue" in STREET_TYPES


@pytest.mark.parametrize(
    "name,category",
    [
        ("Boston Pizza", "restaurant"),
        ("Amen Thrift Shop", "retail"),
        ("Wetaskiwin Tire Centre", "automotive"),
        ("Smile Dental Clinic", "health"),
        ("Prairie Law Office", "professional"),
        ("Spotless Cleaning", "home-services"),
        ("AEM Fabrication Ltd", "other"),
    ],
)
def test_categories(name, category):
    assert categorize_business(name) == category
