"""
Static vocabulary used by the business directory parser.

Kept as plain data so the tables can be exercised in tests independently of
the parsing code.
"""

from __future__ import annotations

import re
from typing import Dict, Pattern, Tuple

# Words that usually close a business name.
BUSINESS_SUFFIXES: Tuple[str, ...] = (
    "Ltd", "Inc", "Corp", "Co", "LLC", "LLP", "Limited", "Incorporated",
    "Services", "Service", "Restaurant", "Cafe", "Centre", "Center", "Group",
    "Club", "Hotel", "Inn", "Motel", "Bar", "Grill", "Kitchen", "Bakery",
    "Market", "Auto", "Motors", "Sales", "Clinic", "Hospital", "Salon",
    "Spa", "Studio", "Studios", "Fitness", "Gym", "Pizza", "Pasta", "Liquor",
    "Gas", "Oil", "Tire", "Tires", "Glass", "Electric", "Plumbing",
    "Construction", "Contracting", "Cleaning", "Pharmacy", "Bank",
    "Insurance", "Travel", "Agency", "Consulting", "Solutions", "Systems",
    "Tech", "Communications", "Media", "Design", "Graphics", "Printing",
    "Photography", "Entertainment", "Equipment", "Supply", "Supplies",
    "Parts", "Repair", "Repairs", "Maintenance", "Security", "Safety",
    "Training", "Education", "Academy", "School", "Institute", "Foundation",
    "Association", "Society", "Network", "Taxi", "Cab", "Rental", "Rentals",
    "Finance", "Financial", "Investment", "Holdings", "Properties",
    "Development", "Management", "Shop", "Store", "Office", "Welding",
    "Fabrication", "Dental", "Law",
)

# Street-type tokens, long forms first so alternation prefers them.
STREET_TYPES: Tuple[str, ...] = (
    "Street", "Avenue", "Road", "Drive", "Boulevard", "Crescent", "Close",
    "Court", "Lane", "Place", "Way", "Trail", "Highway",
    "Ave", "Blvd", "Cres", "Hwy", "Ct", "Dr", "Ln", "Pl", "Rd", "St",
)

DEFAULT_CITY = "Wetaskiwin"
DEFAULT_PROVINCE = "AB"

# Canadian postal code: letter digit letter, optional space, digit letter digit
POSTAL_CODE = r"[ABCEGHJ-NPRSTVXY]\d[ABCEGHJ-NPRSTV-Z]\s?\d[ABCEGHJ-NPRSTV-Z]\d"

# Keyword -> category, checked in order.
CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("restaurant", ("pizza", "restaurant", "cafe", "coffee", "bar", "grill",
                    "food", "kitchen", "deli", "bakery", "a&w", "tim hortons")),
    ("retail", ("store", "shop", "boutique", "clothing", "fashion", "market",
                "liquor", "7-eleven")),
    ("automotive", ("auto", "car", "garage", "tire", "service", "repair",
                    "collision", "mechanic")),
    ("health", ("clinic", "medical", "health", "dental", "pharmacy",
                "wellness", "doctor", "therapy")),
    ("professional", ("law", "accounting", "insurance", "real estate",
                      "financial", "consulting", "lawyer", "attorney")),
    ("home-services", ("cleaning", "plumbing", "electrical", "construction",
                       "renovation", "landscaping", "septic", "home services")),
)

_ADDRESS_CACHE: Dict[Tuple[str, str], Pattern[str]] = {}


def _alternation(words) -> str:
    return "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))


def address_pattern(city: str = DEFAULT_CITY, province: str = DEFAULT_PROVINCE) -> Pattern[str]:
    """Compiled address matcher for one city.

    Order enforced: unit/number, optional numbered street, up to three
    street-name words, street type, city, province, postal code.
    """
    key = (city, province)
    if key not in _ADDRESS_CACHE:
        _ADDRESS_CACHE[key] = re.compile(
            r"""
            (?P<address>
                (?:(?:\#|Unit\s*|Suite\s*|Bay\s*)[A-Za-z0-9]+[,\s\-]*)?
                (?<!\d)\d+[A-Za-z]?
                (?:[\s\-,]+\d+[A-Za-z]?)?
                (?:[\s\-,]*[A-Z][A-Za-z']*){{0,3}}?
                \s*(?<![A-Za-z])(?:{street})(?![a-z])\.?
                .*?{city}
                .*?(?:{province}|Alberta)(?![a-z])
                .*?{postal}
            )
            """.format(
                street=_alternation(STREET_TYPES),
                city=re.escape(city),
                province=re.escape(province),
                postal=POSTAL_CODE,
            ),
            re.VERBOSE,
        )
    return _ADDRESS_CACHE[key]
