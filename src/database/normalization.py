"""
Data Normalization Module

Centralized functions to turn raw scraped fields into our standardized records.
All ingesters should use these functions to ensure consistency.

Usage:
    from src.database.normalization import normalize_official, infer_jurisdiction

    # In your ingester:
    raw = {"name": "Jane Doe", "party": "Liberal", "constituency": "Test Riding"}
    official = normalize_official(raw, source, page_url)
    await writer.upsert_official(official)
"""
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from src.config.constants import (
    DEFAULT_BILL_CATEGORY,
    DEFAULT_TOPIC,
    TRUST_SCORE_BASE,
    TRUST_SCORE_MAX,
    TRUST_SCORE_MIN,
    UNKNOWN_JURISDICTION,
)
from src.models.bill import Bill
from src.models.committee import Committee, ElectionRecord
from src.models.official import ContactInfo, Official
from src.models.source import GovernmentLevel, Source
from src.models.statement import Statement
from src.models.vote import VotingRecord


# ============================================================================
# Text Cleaning
# ============================================================================

_WHITESPACE = re.compile(r"\s+")
# Word characters, whitespace and a small set of punctuation survive
_DISALLOWED = re.compile(r"[^\w\s.,;:!?'\"()&/%$#@+\-]")
_DASHES = str.maketrans({
    "\u2010": "-", "\u2011": "-", "\u2012": "-", "\u2013": "-", "\u2014": "-", "\u2019": "'",
})


def clean_text(text: Optional[str]) -> str:
    """
    Collapse whitespace, strip non-semantic characters and trim.

    Examples:
        >>> clean_text("  Jane\\n\\t Doe  ")
        "Jane Doe"
        >>> clean_text("Nepean\\u2013Carleton *")
        "Nepean-Carleton"
    """
    if not text:
        return ""
    text = str(text).translate(_DASHES)
    text = _DISALLOWED.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def clean_or_none(text: Optional[str]) -> Optional[str]:
    """clean_text, but empty results become None so they never overwrite stored data."""
    cleaned = clean_text(text)
    return cleaned or None


_HONORIFICS = re.compile(
    r"^(the\s+)?(right\s+)?(honourable|honorable|hon\.?)\s+",
    re.IGNORECASE
)


def clean_person_name(name: Optional[str]) -> str:
    """Clean a person's name and drop leading honorifics ("The Hon.", "Right Honourable")."""
    cleaned = clean_text(name)
    cleaned = _HONORIFICS.sub("", cleaned)
    # Hansard speaker labels end with a colon
    return cleaned.rstrip(":").strip()


_EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(\.[\w-]+)+")


def clean_email(value: Optional[str]) -> Optional[str]:
    """Strip mailto:/query parts and lowercase; None if no address is present."""
    if not value:
        return None
    value = value.strip()
    if value.lower().startswith("mailto:"):
        value = value[7:]
    value = value.split("?", 1)[0]
    match = _EMAIL_PATTERN.search(value)
    return match.group(0).lower() if match else None


def clean_phone(value: Optional[str]) -> Optional[str]:
    """
    Normalize North American phone numbers to "(416) 555-0100".

    Anything that does not look like a 10 or 11 digit number is returned cleaned but unformatted.
    """
    if not value:
        return None
    value = value.strip()
    if value.lower().startswith("tel:"):
        value = value[4:]
    digits = re.sub(r"\D", "", value)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return clean_or_none(value)


def parse_count(value: Optional[str]) -> int:
    """First integer in the text (thousands separators allowed), or 0."""
    if not value:
        return 0
    match = re.search(r"\d[\d,]*", str(value))
    if not match:
        return 0
    return int(match.group(0).replace(",", ""))


# ============================================================================
# Dates
# ============================================================================

_DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y-%m-%dT%H:%M:%S",
    "%B %d, %Y",
    "%b %d, %Y",
    "%b. %d, %Y",
    "%B %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%A, %B %d, %Y",
]
_ORDINALS = re.compile(r"(\d{1,2})(st|nd|rd|th)\b")
_ISO_IN_TEXT = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse the date formats seen on legislature pages and feeds.

    Returns a timezone-aware UTC datetime, or None when nothing parses.

    Examples:
        >>> parse_date("2024-03-05")
        datetime(2024, 3, 5, tzinfo=timezone.utc)
        >>> parse_date("March 5th, 2024")
        datetime(2024, 3, 5, tzinfo=timezone.utc)
        >>> parse_date("Tue, 05 Mar 2024 14:30:00 GMT")
        datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc)
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    text = _ORDINALS.sub(r"\1", clean_text(value))
    if not text:
        return None

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    # RSS pubDate (RFC 822)
    try:
        parsed = parsedate_to_datetime(value.strip())
        if parsed is not None:
            return parsed.astimezone(timezone.utc) if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    except (TypeError, ValueError, IndexError):
        pass

    # ISO date buried in longer text ("Introduced 2024-03-05 by ...")
    match = _ISO_IN_TEXT.search(value)
    if match:
        try:
            return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)), tzinfo=timezone.utc)
        except ValueError:
            return None
    return None


# ============================================================================
# Jurisdiction Inference
# ============================================================================

PROVINCE_NAME_TO_CODE = {
    "Ontario": "ON", "Quebec": "QC", "British Columbia": "BC", "Alberta": "AB",
    "Saskatchewan": "SK", "Manitoba": "MB", "New Brunswick": "NB", "Nova Scotia": "NS",
    "Prince Edward Island": "PE", "Newfoundland and Labrador": "NL",
    "Northwest Territories": "NT", "Yukon": "YT", "Nunavut": "NU",
}

PROVINCE_CODE_TO_NAME = {v: k for k, v in PROVINCE_NAME_TO_CODE.items()}

# Domain (without www.) to jurisdiction name. Subdomains match their parent.
JURISDICTION_BY_DOMAIN = {
    # Federal
    "parl.ca": "Canada",
    "ourcommons.ca": "Canada",
    "sencanada.ca": "Canada",
    "elections.ca": "Canada",
    "ciec-ccie.parl.gc.ca": "Canada",
    "lobbycanada.gc.ca": "Canada",
    "pm.gc.ca": "Canada",
    "canada.ca": "Canada",
    # Provincial and territorial legislatures
    "ola.org": "Ontario",
    "elections.on.ca": "Ontario",
    "assnat.qc.ca": "Quebec",
    "electionsquebec.qc.ca": "Quebec",
    "leg.bc.ca": "British Columbia",
    "elections.bc.ca": "British Columbia",
    "assembly.ab.ca": "Alberta",
    "elections.ab.ca": "Alberta",
    "legassembly.sk.ca": "Saskatchewan",
    "gov.mb.ca": "Manitoba",
    "gnb.ca": "New Brunswick",
    "legnb.ca": "New Brunswick",
    "nslegislature.ca": "Nova Scotia",
    "assembly.pe.ca": "Prince Edward Island",
    "assembly.nl.ca": "Newfoundland and Labrador",
    "assembly.gov.nt.ca": "Northwest Territories",
    "ntassembly.ca": "Northwest Territories",
    "legassembly.gov.yk.ca": "Yukon",
    "yukonassembly.ca": "Yukon",
    "assembly.nu.ca": "Nunavut",
    # Municipal
    "toronto.ca": "Toronto",
    "montreal.ca": "Montreal",
    "vancouver.ca": "Vancouver",
    "calgary.ca": "Calgary",
    "ottawa.ca": "Ottawa",
    "edmonton.ca": "Edmonton",
    "winnipeg.ca": "Winnipeg",
    "halifax.ca": "Halifax",
    "hamilton.ca": "Hamilton",
    "mississauga.ca": "Mississauga",
    "ville.quebec.qc.ca": "Quebec City",
}

# Longest keys first so "ville.quebec.qc.ca" wins over shorter suffixes
_DOMAINS_BY_LENGTH = sorted(JURISDICTION_BY_DOMAIN, key=len, reverse=True)


def domain_of(url: Optional[str]) -> str:
    """Lowercased host of a URL without a leading www."""
    if not url:
        return ""
    if "://" not in url:
        url = f"https://{url}"
    host = urlparse(url).netloc.lower().split(":", 1)[0]
    return host[4:] if host.startswith("www.") else host


def infer_jurisdiction(url: Optional[str]) -> str:
    """
    Jurisdiction name for a source URL.

    Unmatched domains map to the "Unknown" sentinel rather than failing.

    Examples:
        >>> infer_jurisdiction("https://www.ola.org/en/members/current")
        "Ontario"
        >>> infer_jurisdiction("https://example.com")
        "Unknown"
    """
    host = domain_of(url)
    if not host:
        return UNKNOWN_JURISDICTION
    for domain in _DOMAINS_BY_LENGTH:
        if host == domain or host.endswith("." + domain):
            return JURISDICTION_BY_DOMAIN[domain]
    return UNKNOWN_JURISDICTION


def province_code(jurisdiction: Optional[str]) -> Optional[str]:
    """Two-letter code for a province or territory name (or code)."""
    if not jurisdiction:
        return None
    value = jurisdiction.strip()
    if value.upper() in PROVINCE_CODE_TO_NAME:
        return value.upper()
    for name, code in PROVINCE_NAME_TO_CODE.items():
        if name.lower() == value.lower():
            return code
    return None


# ============================================================================
# Level / Position Inference
# ============================================================================

_MUNICIPAL_TITLES = re.compile(r"\b(mayor|councill?or|alderman|reeve|city council|ward)\b", re.IGNORECASE)
_PROVINCIAL_TITLES = re.compile(
    r"\b(mla|mpp|mna|mha|premier|member of the legislative assembly|"
    r"member of provincial parliament|member of the national assembly|member of the house of assembly)\b",
    re.IGNORECASE
)
_FEDERAL_TITLES = re.compile(
    r"\b(mp|senator|prime minister|member of parliament)\b",
    re.IGNORECASE
)


def infer_level(
    position: Optional[str],
    default: GovernmentLevel = GovernmentLevel.FEDERAL
) -> GovernmentLevel:
    """
    Infer level of government from a position title.

    Args:
        position: Title such as "MP", "Senator", "MPP", "Mayor"
        default: Level to use when the title is empty or ambiguous

    Returns:
        GovernmentLevel

    Examples:
        >>> infer_level("Senator")
        GovernmentLevel.FEDERAL
        >>> infer_level("MPP for Ottawa Centre")
        GovernmentLevel.PROVINCIAL
        >>> infer_level("Deputy Mayor")
        GovernmentLevel.MUNICIPAL
        >>> infer_level("Member")
        GovernmentLevel.FEDERAL
    """
    if not position:
        return default
    if _MUNICIPAL_TITLES.search(position):
        return GovernmentLevel.MUNICIPAL
    if _PROVINCIAL_TITLES.search(position):
        return GovernmentLevel.PROVINCIAL
    if _FEDERAL_TITLES.search(position):
        return GovernmentLevel.FEDERAL
    return default


def default_position(level: GovernmentLevel, jurisdiction: Optional[str] = None) -> str:
    """
    Title to store for an official whose source did not publish one.

    Provincial titles differ: MPP in Ontario, MNA in Quebec, MHA in
    Newfoundland and Labrador, MLA everywhere else.
    """
    if level == GovernmentLevel.MUNICIPAL:
        return "Councillor"
    if level == GovernmentLevel.PROVINCIAL:
        code = province_code(jurisdiction)
        if code == "ON":
            return "MPP"
        if code == "QC":
            return "MNA"
        if code == "NL":
            return "MHA"
        return "MLA"
    return "MP"


def chamber_for(source: Source) -> str:
    """Name of the deliberative body a source's votes were held in."""
    if source.level == GovernmentLevel.FEDERAL:
        return "Senate" if "sencanada" in source.domain else "House of Commons"
    if source.level == GovernmentLevel.MUNICIPAL:
        return "City Council"
    code = province_code(source.jurisdiction)
    if code == "QC":
        return "National Assembly"
    if code in ("NL", "NS"):
        return "House of Assembly"
    return "Legislative Assembly"


def calculate_initial_trust_score(position: Optional[str], level: GovernmentLevel) -> int:
    """
    Initial trust score for a newly discovered official.

    Base 75, +5 federal, +2 municipal, +10 for heads of government,
    +5 for ministers and speakers, clamped to [50, 95].
    """
    score = TRUST_SCORE_BASE
    if level == GovernmentLevel.FEDERAL:
        score += 5
    elif level == GovernmentLevel.MUNICIPAL:
        score += 2

    title = (position or "").lower()
    if "prime minister" in title or "premier" in title or re.search(r"\bmayor\b", title):
        score += 10
    elif "minister" in title or "speaker" in title:
        score += 5

    return max(TRUST_SCORE_MIN, min(TRUST_SCORE_MAX, score))


# ============================================================================
# Party Normalization
# ============================================================================

# Ordered: more specific labels must come before the generic ones they contain
PARTY_MAPPINGS = [
    (r"progressive conservative|\bpc\b", "Progressive Conservative"),
    (r"united conservative|\bucp\b", "United Conservative"),
    (r"conservative|\bcpc\b|\bcon\b", "Conservative"),
    (r"liberal|\blib\b|\blpc\b", "Liberal"),
    (r"new democratic|\bndp\b", "NDP"),
    (r"bloc", "Bloc Québécois"),
    (r"green", "Green"),
    (r"people'?s party|\bppc\b", "People's Party"),
    (r"coalition avenir|\bcaq\b", "CAQ"),
    (r"parti qu[ée]b[ée]cois|\bpq\b", "Parti Québécois"),
    (r"qu[ée]bec solidaire|\bqs\b", "Québec solidaire"),
    (r"saskatchewan party", "Saskatchewan Party"),
    (r"yukon party", "Yukon Party"),
    (r"bc united", "BC United"),
    (r"independent|\bind\b", "Independent"),
    (r"non-?affiliated|non-?partisan|consensus", "Non-affiliated"),
]

_PARTY_PATTERNS = [(re.compile(pattern, re.IGNORECASE), name) for pattern, name in PARTY_MAPPINGS]


def normalize_party(party: Optional[str]) -> Optional[str]:
    """
    Normalize a party label to its canonical name.

    Unknown labels are kept (cleaned) rather than discarded; empty input returns None.

    Examples:
        >>> normalize_party("Liberal Party of Canada")
        "Liberal"
        >>> normalize_party("NDP")
        "NDP"
        >>> normalize_party("")
        None
    """
    cleaned = clean_text(party)
    if not cleaned:
        return None
    for pattern, name in _PARTY_PATTERNS:
        if pattern.search(cleaned):
            return name
    return cleaned


# ============================================================================
# Bill Normalization
# ============================================================================

# Letter prefix, dash, digits (C-69, S-12)
BILL_NUMBER_PATTERN = re.compile(r"\b([A-Z])-(\d{1,4})\b")
_NUMERIC_BILL_PATTERN = re.compile(r"\bBill\s+(?:No\.?\s*)?(\d{1,4})\b", re.IGNORECASE)


def extract_bill_number(text: Optional[str], jurisdiction: Optional[str] = None) -> Optional[str]:
    """
    Find a bill number in free text.

    Federal numbers look like "C-69". Provincial legislatures number bills
    plainly ("Bill 23"); those are qualified with the province code ("ON-23")
    so numbers stay unique across legislatures.

    Examples:
        >>> extract_bill_number("Bill C-69, An Act to enact the Impact Assessment Act")
        "C-69"
        >>> extract_bill_number("Bill 23", jurisdiction="Ontario")
        "ON-23"
    """
    if not text:
        return None
    match = BILL_NUMBER_PATTERN.search(text.upper())
    if match:
        return f"{match.group(1)}-{match.group(2)}"

    code = province_code(jurisdiction)
    if code:
        match = _NUMERIC_BILL_PATTERN.search(text)
        if match:
            return f"{code}-{int(match.group(1))}"
    return None


# Ordered: the first category whose keywords appear in the title wins
BILL_CATEGORY_KEYWORDS = [
    ("Finance & Economy", ["budget", "tax", "finance", "financial", "economic", "economy", "appropriation",
                           "revenue", "fiscal", "pension", "banking", "tariff", "trade"]),
    ("Healthcare", ["health", "medical", "hospital", "pharma", "drug", "disease", "mental health"]),
    ("Environment", ["environment", "climate", "emission", "carbon", "pollution", "conservation",
                     "energy", "fisheries", "wildlife", "impact assessment"]),
    ("Justice", ["criminal", "justice", "court", "police", "prison", "sentencing", "firearm", "crime"]),
    ("Technology", ["digital", "privacy", "technology", "online", "internet", "telecommunication",
                    "artificial intelligence", "cyber", "data"]),
    ("Defence & Security", ["defence", "defense", "military", "armed forces", "security", "veteran"]),
    ("Education", ["education", "school", "student", "university", "college", "child care", "learning"]),
    ("Immigration", ["immigration", "refugee", "citizenship", "border", "asylum"]),
    ("Infrastructure", ["infrastructure", "transport", "transit", "highway", "railway", "housing", "road"]),
    ("Indigenous Affairs", ["indigenous", "first nations", "inuit", "métis", "metis", "treaty"]),
]

_CATEGORY_PATTERNS = [
    (category, [re.compile(rf"\b{re.escape(keyword)}", re.IGNORECASE) for keyword in keywords])
    for category, keywords in BILL_CATEGORY_KEYWORDS
]


def infer_bill_category(title: Optional[str], summary: Optional[str] = None) -> str:
    """
    Categorize a bill by keyword containment in its title (then summary).

    Examples:
        >>> infer_bill_category("An Act to Amend the Income Tax Act")
        "Finance & Economy"
        >>> infer_bill_category("An Act respecting National Lighthouse Day")
        "General Legislation"
    """
    for text in (title, summary):
        if not text:
            continue
        for category, patterns in _CATEGORY_PATTERNS:
            if any(pattern.search(text) for pattern in patterns):
                return category
    return DEFAULT_BILL_CATEGORY


# Ordered: later stages first so "Passed third reading" is not read as "Introduced"
BILL_STATUS_KEYWORDS = [
    ("royal assent", "Royal Assent"),
    ("defeated", "Defeated"),
    ("negatived", "Defeated"),
    ("withdrawn", "Withdrawn"),
    ("third reading", "Third Reading"),
    ("report stage", "Report Stage"),
    ("committee", "Committee"),
    ("second reading", "Second Reading"),
    ("first reading", "First Reading"),
    ("introduc", "Introduced"),
]


def normalize_bill_status(status: Optional[str]) -> Optional[str]:
    """
    Map free-text stage descriptions onto our stage names.

    Unrecognized but non-empty text is kept cleaned; empty returns None.
    """
    cleaned = clean_text(status)
    if not cleaned:
        return None
    lowered = cleaned.lower()
    for keyword, normalized in BILL_STATUS_KEYWORDS:
        if keyword in lowered:
            return normalized
    return cleaned


# ============================================================================
# News Topic Inference
# ============================================================================

TOPIC_KEYWORDS = {
    "Healthcare": ["health", "hospital", "pharmacare", "doctor", "nurse", "medical"],
    "Economy": ["economy", "inflation", "budget", "tax", "jobs", "interest rate", "deficit", "tariff"],
    "Environment": ["climate", "carbon", "emissions", "environment", "wildfire", "pipeline"],
    "Housing": ["housing", "rent", "mortgage", "homeless"],
    "Immigration": ["immigration", "refugee", "asylum", "border", "temporary foreign"],
    "Indigenous Affairs": ["indigenous", "first nations", "reconciliation", "inuit", "métis"],
    "Defence": ["defence", "military", "nato", "armed forces"],
    "Education": ["school", "education", "university", "student"],
    "Justice": ["court", "crime", "police", "justice", "charter"],
    "Elections": ["election", "campaign", "poll", "ballot", "by-election"],
    "Foreign Affairs": ["foreign", "diplomat", "ukraine", "china", "united states", "trade deal"],
    "Technology": ["technology", "artificial intelligence", "privacy", "online", "cyber"],
}

_TOPIC_PATTERNS = {
    topic: [re.compile(rf"\b{re.escape(keyword)}", re.IGNORECASE) for keyword in keywords]
    for topic, keywords in TOPIC_KEYWORDS.items()
}


def infer_topics(text: Optional[str], limit: int = 3) -> List[str]:
    """
    Keyword-based topics for text, most keyword hits first.

    Returns ["General"] when nothing matches.
    """
    if not text:
        return [DEFAULT_TOPIC]
    scored = []
    for topic, patterns in _TOPIC_PATTERNS.items():
        hits = sum(1 for pattern in patterns if pattern.search(text))
        if hits:
            scored.append((hits, topic))
    if not scored:
        return [DEFAULT_TOPIC]
    # Stable on ties: dictionary order
    scored.sort(key=lambda item: -item[0])
    return [topic for _, topic in scored[:limit]]


POLITICAL_KEYWORDS = [
    "parliament", "minister", "mp", "mpp", "mla", "mna", "senate", "senator", "legislation",
    "bill", "government", "election", "policy", "premier", "prime minister", "cabinet",
    "liberal", "conservative", "ndp", "bloc", "green party", "party", "vote", "council",
    "mayor", "budget", "federal", "provincial", "legislature", "opposition", "caucus",
]

_POLITICAL_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(keyword) for keyword in POLITICAL_KEYWORDS) + r")\b",
    re.IGNORECASE
)


def is_political_content(*texts: Optional[str]) -> bool:
    """True when any of the texts mentions a political keyword."""
    return any(text and _POLITICAL_PATTERN.search(text) for text in texts)


# ============================================================================
# Full Record Normalization
# ============================================================================

def normalize_official(raw: Dict[str, Any], source: Source, page_url: Optional[str] = None) -> Official:
    """
    Normalize a scraped official record.

    Level comes from the position title, falling back to the source's
    declared level. Jurisdiction is inferred from the page's domain.

    Args:
        raw: Field name to raw text, as produced by the extractor
        source: Source the record came from
        page_url: URL of the page it was extracted from

    Returns:
        Official ready for upsert

    Raises:
        ValueError: If the name is missing or too short to be real

    Example:
        >>> raw = {"name": "Jane Doe", "party": "Liberal", "constituency": "Test Riding"}
        >>> official = normalize_official(raw, source, "https://www.ola.org/members")
        >>> official.jurisdiction
        "Ontario"
    """
    name = clean_person_name(raw.get("name"))
    if len(name) <= 2:
        raise ValueError(f"Official name too short: {raw.get('name')!r}")

    position = clean_or_none(raw.get("position"))
    level = infer_level(position, default=source.level)
    jurisdiction = infer_jurisdiction(page_url or source.base_url)

    contact = ContactInfo(
        email=clean_email(raw.get("email")),
        phone=clean_phone(raw.get("phone")),
        office=clean_or_none(raw.get("office")),
        website=(raw.get("website") or "").strip() or None,
    )

    return Official(
        name=name,
        jurisdiction=jurisdiction,
        position=position,
        party=normalize_party(raw.get("party")),
        level=level,
        constituency=clean_or_none(raw.get("constituency")),
        contact=contact,
        profile_url=(raw.get("profile_url") or "").strip() or None,
        image_url=(raw.get("image_url") or "").strip() or None,
        trust_score=calculate_initial_trust_score(position or default_position(level, jurisdiction), level),
        source_name=source.name,
        source_url=page_url,
    )


def normalize_bill(raw: Dict[str, Any], source: Source, page_url: Optional[str] = None) -> Bill:
    """
    Normalize a scraped bill record.

    Raises:
        ValueError: If no bill number or title can be found
    """
    jurisdiction = infer_jurisdiction(page_url or source.base_url)
    title = clean_text(raw.get("title"))
    bill_number = (
        extract_bill_number(raw.get("bill_number"), jurisdiction)
        or extract_bill_number(title, jurisdiction)
    )
    if not bill_number or not title:
        raise ValueError(f"Bill missing number or title: {raw.get('bill_number')!r} / {title[:40]!r}")

    summary = clean_or_none(raw.get("summary"))
    return Bill(
        bill_number=bill_number,
        title=title,
        summary=summary,
        status=normalize_bill_status(raw.get("status")),
        bill_type=clean_or_none(raw.get("bill_type")),
        category=infer_bill_category(title, summary),
        sponsor=clean_person_name(raw.get("sponsor")) or None,
        introduced_date=parse_date(raw.get("introduced_date")),
        jurisdiction=jurisdiction,
        level=source.level,
        source_name=source.name,
        source_url=page_url,
    )


def normalize_vote(raw: Dict[str, Any], source: Source, page_url: Optional[str] = None) -> VotingRecord:
    """
    Normalize a scraped division record.

    Raises:
        ValueError: If the vote does not reference a bill number
    """
    jurisdiction = infer_jurisdiction(page_url or source.base_url)
    bill_number = extract_bill_number(raw.get("bill_number"), jurisdiction)
    if not bill_number:
        raise ValueError(f"Vote without bill number: {raw.get('bill_number')!r}")

    return VotingRecord(
        bill_number=bill_number,
        vote_date=parse_date(raw.get("vote_date")),
        vote_type=clean_or_none(raw.get("vote_type")),
        result=clean_or_none(raw.get("result")),
        yes_votes=parse_count(raw.get("yes_votes")),
        no_votes=parse_count(raw.get("no_votes")),
        abstentions=parse_count(raw.get("abstentions")),
        jurisdiction=jurisdiction,
        chamber=chamber_for(source),
        source_url=page_url,
    )


def normalize_statement(raw: Dict[str, Any], source: Source, page_url: Optional[str] = None) -> Statement:
    """
    Normalize a Hansard intervention.

    Raises:
        ValueError: If speaker or content is missing
    """
    speaker = clean_person_name(raw.get("speaker"))
    content = clean_text(raw.get("content"))
    if not speaker or not content:
        raise ValueError("Statement missing speaker or content")

    return Statement(
        speaker_name=speaker,
        content=content,
        date=parse_date(raw.get("date")),
        context=clean_or_none(raw.get("context")),
        source=f"{source.name} Hansard",
        source_url=page_url,
        jurisdiction=infer_jurisdiction(page_url or source.base_url),
    )


def _split_names(value: Optional[str]) -> List[str]:
    if not value:
        return []
    parts = re.split(r"[;,\n]|\s{2,}", value)
    return [name for name in (clean_person_name(part) for part in parts) if len(name) > 2]


def normalize_committee(raw: Dict[str, Any], source: Source, page_url: Optional[str] = None) -> Committee:
    """
    Normalize a committee listing.

    Raises:
        ValueError: If the committee has no name
    """
    name = clean_text(raw.get("name"))
    if not name:
        raise ValueError("Committee without a name")

    return Committee(
        name=name,
        jurisdiction=infer_jurisdiction(page_url or source.base_url),
        committee_type=clean_or_none(raw.get("committee_type")),
        chair=clean_person_name(raw.get("chair")) or None,
        members=_split_names(raw.get("members")),
        source_url=page_url,
    )


def normalize_election(raw: Dict[str, Any], source: Source, page_url: Optional[str] = None) -> ElectionRecord:
    """
    Normalize an election listing.

    Raises:
        ValueError: If the election has no name
    """
    name = clean_text(raw.get("name"))
    if not name:
        raise ValueError("Election without a name")

    election_type = clean_or_none(raw.get("election_type"))
    if not election_type:
        election_type = "By-election" if "by-election" in name.lower() else "General"

    return ElectionRecord(
        name=name,
        jurisdiction=infer_jurisdiction(page_url or source.base_url),
        date=parse_date(raw.get("date")),
        election_type=election_type,
        source_url=page_url,
    )


if __name__ == "__main__":
    # Quick sanity checks
    print("Testing normalization functions...")

    print(f"infer_jurisdiction('https://www.ola.org') = {infer_jurisdiction('https://www.ola.org')}")
    print(f"infer_jurisdiction('https://example.com') = {infer_jurisdiction('https://example.com')}")
    print(f"infer_level('MNA for Gouin') = {infer_level('MNA for Gouin').value}")
    print(f"normalize_party('New Democratic Party') = {normalize_party('New Democratic Party')}")
    print(f"infer_bill_category('An Act to Amend the Income Tax Act') = "
          f"{infer_bill_category('An Act to Amend the Income Tax Act')}")
    print(f"extract_bill_number('Bill C-69') = {extract_bill_number('Bill C-69')}")

    print("\n✅ Normalization functions working!")
