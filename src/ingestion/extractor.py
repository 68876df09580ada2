"""
HTML extraction with ordered selector candidates.

Government sites publish the same kinds of records with wildly different,
unversioned markup. Every field is therefore described by an ordered list of
candidate selectors; the first candidate that yields non-empty text wins, and
a field whose candidates all miss comes back as an empty string.

Usage:
    records = extract(html, EntityType.OFFICIALS, source=source, page_url=url)
    # [{"name": "Jane Doe", "party": "Liberal", "constituency": "Test Riding", ...}]
"""
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Pattern, Sequence, Tuple, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from src.models.source import EntityType, Source

logger = logging.getLogger(__name__)

# A candidate is a CSS selector (read the element's text) or (selector, attribute)
Candidate = Union[str, Tuple[str, str]]

EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
PHONE_PATTERN = re.compile(r"(?:\+?1[\s.-]?)?\(?\b\d{3}\)?[\s.-]?\d{3}[\s.-]\d{4}\b")
BILL_REFERENCE_PATTERN = re.compile(r"\b[A-Z]-\d{1,4}\b|\bBill\s+(?:No\.?\s*)?\d{1,4}\b", re.IGNORECASE)

ARTICLE_PARAGRAPH_SELECTORS = [
    "article p",
    ".article-content p",
    ".article-body p",
    ".story-content p",
    ".story-body p",
    ".entry-content p",
    "main p",
]


# ============================================================================
# Rule definitions
# ============================================================================

@dataclass(frozen=True)
class FieldRule:
    """
    How to pull one field out of a record container.

    Attributes:
        candidates: Ordered selectors, tried first to last
        header_keywords: Table header words that identify this field's column
        container_attr: Attribute on the container itself to read first
        pattern: Regex scanned over the container's text when no candidate matches
        multiple: Join every match of the first hitting candidate with "; "
        fallback_to_text: Use the container's whole text as a last resort
    """
    candidates: Tuple[Candidate, ...] = ()
    header_keywords: Tuple[str, ...] = ()
    container_attr: Optional[str] = None
    pattern: Optional[Pattern] = None
    multiple: bool = False
    fallback_to_text: bool = False

    def with_candidates_first(self, extra: Sequence[Candidate]) -> "FieldRule":
        return replace(self, candidates=tuple(extra) + self.candidates)


@dataclass(frozen=True)
class EntityRules:
    """
    Extraction rules for one entity type.

    `containers` are tried in order and the first selector that matches
    anything defines the record containers for the page.
    """
    containers: Tuple[str, ...]
    fields: Dict[str, FieldRule]
    required: Tuple[str, ...] = ()
    min_lengths: Dict[str, int] = field(default_factory=dict)
    max_lengths: Dict[str, int] = field(default_factory=dict)
    dedupe_on: Tuple[str, ...] = ()


def _class_fragment(fragment: str) -> str:
    """Block-level elements whose class attribute contains `fragment`."""
    return ", ".join(
        f'{tag}[class*="{fragment}"]' for tag in ("div", "li", "article", "section", "tr")
    )


_NOT_CONTACT_LINK = 'a[href]:not([href^="mailto:"]):not([href^="tel:"])'

OFFICIAL_RULES = EntityRules(
    containers=(
        "[data-member-id]",
        ".mla-profile, .mpp-profile, .mna-profile, .member-card",
        _class_fragment("member"),
        _class_fragment("deputy"),
        _class_fragment("senator"),
        _class_fragment("councillor"),
        "tr:has(td)",
    ),
    fields={
        "name": FieldRule(
            candidates=(".name", ".member-name", ".deputy-name", ".senator-name", "[data-name]",
                        "h2", "h3", "h4", "strong", "b", "td:first-child"),
            header_keywords=("name", "member", "senator", "councillor"),
            container_attr="data-name",
            fallback_to_text=True,
        ),
        "position": FieldRule(
            candidates=(".position", ".member-title", ".title", ".role"),
            header_keywords=("position", "title", "role"),
        ),
        "party": FieldRule(
            candidates=(".party", ".political-party", ".affiliation", ".caucus", "td:nth-child(2)"),
            header_keywords=("party", "affiliation", "caucus"),
        ),
        "constituency": FieldRule(
            candidates=(".constituency", ".riding", ".district", ".electoral-district", ".ward",
                        "td:nth-child(3)"),
            header_keywords=("constituency", "riding", "district", "division", "ward"),
        ),
        "email": FieldRule(
            candidates=(('a[href^="mailto:"]', "href"), ".email"),
            header_keywords=("email", "e-mail"),
            pattern=EMAIL_PATTERN,
        ),
        "phone": FieldRule(
            candidates=(('a[href^="tel:"]', "href"), ".phone", ".telephone", ".tel"),
            header_keywords=("phone", "telephone"),
            pattern=PHONE_PATTERN,
        ),
        "office": FieldRule(
            candidates=(".office", ".address", ".constituency-office", "address"),
            header_keywords=("office", "address"),
        ),
        "website": FieldRule(
            candidates=(("a.website", "href"), ('a[rel="external"]', "href")),
        ),
        "profile_url": FieldRule(candidates=((_NOT_CONTACT_LINK, "href"),)),
        "image_url": FieldRule(candidates=(("img[src]", "src"),)),
    },
    required=("name",),
    min_lengths={"name": 3},
    max_lengths={"name": 120},
    dedupe_on=("name", "constituency"),
)

BILL_RULES = EntityRules(
    containers=(
        "[data-bill-number]",
        ".bill-item, .legislation-item, .bill-row, .legis-item",
        _class_fragment("bill"),
        "tr:has(td)",
    ),
    fields={
        "bill_number": FieldRule(
            candidates=(".bill-number", ".legislation-number", ".bill-id", ".legis-number", ".number",
                        "td:first-child"),
            header_keywords=("bill", "number", "no"),
            container_attr="data-bill-number",
            pattern=BILL_REFERENCE_PATTERN,
        ),
        "title": FieldRule(
            candidates=(".bill-title", ".legislation-title", ".title", ".bill-name", "h3", "h4", "a",
                        "td:nth-child(2)"),
            header_keywords=("title", "name"),
        ),
        "status": FieldRule(
            candidates=(".status", ".bill-status", ".stage", ".current-stage", ".legislation-status",
                        "td:nth-child(3)"),
            header_keywords=("status", "stage"),
        ),
        "bill_type": FieldRule(candidates=(".bill-type", ".type"), header_keywords=("type",)),
        "sponsor": FieldRule(
            candidates=(".sponsor", ".bill-sponsor", ".introduced-by", ".member-sponsor"),
            header_keywords=("sponsor", "introduced by", "member"),
        ),
        "introduced_date": FieldRule(
            candidates=(".introduced", ".introduction-date", ".date", "time"),
            header_keywords=("introduced", "date"),
        ),
        "summary": FieldRule(
            candidates=(".summary", ".description", ".bill-summary", ".legislation-summary", ".abstract", "p"),
            header_keywords=("summary", "description"),
        ),
    },
    required=("bill_number", "title"),
    dedupe_on=("bill_number",),
)

VOTE_RULES = EntityRules(
    containers=(
        ".vote-record, .division, .division-result, .voting-result",
        "tr:has(.vote)",
        _class_fragment("vote"),
    ),
    fields={
        "bill_number": FieldRule(
            candidates=(".bill-number", ".bill", ".legislation", ".subject"),
            header_keywords=("bill", "subject"),
            pattern=BILL_REFERENCE_PATTERN,
        ),
        "vote_date": FieldRule(candidates=(".vote-date", ".date", "time"), header_keywords=("date",)),
        "vote_type": FieldRule(candidates=(".vote-type", ".motion", ".type"), header_keywords=("type", "motion")),
        "result": FieldRule(candidates=(".result", ".outcome", ".decision"),
                            header_keywords=("result", "outcome", "decision")),
        "yes_votes": FieldRule(candidates=(".yes-votes", ".yeas", ".ayes", ".for", ".yes"),
                               header_keywords=("yeas", "yea", "yes", "for")),
        "no_votes": FieldRule(candidates=(".no-votes", ".nays", ".against", ".no"),
                              header_keywords=("nays", "nay", "no", "against")),
        "abstentions": FieldRule(candidates=(".abstentions", ".abstain", ".paired"),
                                 header_keywords=("abstentions", "abstain", "paired")),
    },
    required=("bill_number",),
    dedupe_on=("bill_number", "vote_date"),
)

STATEMENT_RULES = EntityRules(
    containers=(
        "[data-speaker]",
        ".hansard-entry, .intervention, .speech, .statement",
    ),
    fields={
        "speaker": FieldRule(
            candidates=(".speaker", ".intervention-speaker", ".member-name", ".politician", "strong", "b"),
            container_attr="data-speaker",
        ),
        "content": FieldRule(
            candidates=(".content p", ".speech-text p", ".paratext", ".content", ".text", ".speech-text", "p"),
            multiple=True,
        ),
        "date": FieldRule(candidates=(".date", ".timestamp", "time")),
        "context": FieldRule(candidates=(".context", ".subject", ".topic", "h3", "h4")),
    },
    required=("speaker", "content"),
)

COMMITTEE_RULES = EntityRules(
    containers=(
        ".committee, .committee-item",
        _class_fragment("committee"),
    ),
    fields={
        "name": FieldRule(candidates=(".committee-name", ".name", "h2", "h3", "h4", "a", "td:first-child"),
                          header_keywords=("committee", "name")),
        "committee_type": FieldRule(candidates=(".committee-type", ".type"), header_keywords=("type",)),
        "chair": FieldRule(candidates=(".chair", ".committee-chair"), header_keywords=("chair",)),
        "members": FieldRule(candidates=(".members li", ".committee-member", ".member"),
                             header_keywords=("members",), multiple=True),
    },
    required=("name",),
    dedupe_on=("name",),
)

ELECTION_RULES = EntityRules(
    containers=(
        ".election, .election-result, .election-item",
        "tr:has(td)",
    ),
    fields={
        "name": FieldRule(candidates=(".election-name", ".name", "h3", "h4", "a", "td:first-child"),
                          header_keywords=("election", "event", "name")),
        "date": FieldRule(candidates=(".election-date", ".date", "time", "td:nth-child(2)"),
                          header_keywords=("date", "polling day")),
        "election_type": FieldRule(candidates=(".election-type", ".type", "td:nth-child(3)"),
                                   header_keywords=("type",)),
    },
    required=("name",),
    dedupe_on=("name", "date"),
)

DEFAULT_RULES: Dict[EntityType, EntityRules] = {
    EntityType.OFFICIALS: OFFICIAL_RULES,
    EntityType.BILLS: BILL_RULES,
    EntityType.VOTES: VOTE_RULES,
    EntityType.STATEMENTS: STATEMENT_RULES,
    EntityType.COMMITTEES: COMMITTEE_RULES,
    EntityType.ELECTIONS: ELECTION_RULES,
}


def rules_for(entity_type: EntityType, source: Optional[Source] = None) -> EntityRules:
    """
    Default rules for an entity type, with a source's own selectors tried first.
    """
    rules = DEFAULT_RULES[entity_type]
    if source is None:
        return rules

    containers = source.container_selectors.get(entity_type)
    overrides = source.field_selectors.get(entity_type, {})
    if not containers and not overrides:
        return rules

    fields = dict(rules.fields)
    for name, selectors in overrides.items():
        base = fields.get(name, FieldRule())
        fields[name] = base.with_candidates_first(selectors)

    return replace(
        rules,
        containers=tuple(containers or ()) + rules.containers,
        fields=fields,
    )


# ============================================================================
# Extraction
# ============================================================================

def parse_html(html: Optional[str]) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def _safe_select(node: Tag, selector: str, limit: int = 0) -> List[Tag]:
    try:
        return node.select(selector, limit=limit)
    except SelectorSyntaxError as e:
        logger.warning(f"Skipping invalid selector {selector!r}: {e}")
        return []


def _outermost(elements: List[Tag]) -> List[Tag]:
    """Drop elements nested inside another element of the same list."""
    ids = {id(element) for element in elements}
    return [
        element for element in elements
        if not any(id(parent) in ids for parent in element.parents)
    ]


def _signature(element: Tag) -> Tuple[str, Tuple[str, ...]]:
    return element.name, tuple(element.get("class") or ())


def _drop_list_wrappers(elements: List[Tag]) -> List[Tag]:
    """
    Drop matches that wrap a repeated run of other matches.

    `<section class="members-directory">` around several `div.member` cards
    matches the same class fragment as the cards. A match whose nearest
    matched descendants include two with the same tag and classes is a list,
    not a record; so is any match enclosing such a list.
    """
    by_id = {id(element): element for element in elements}
    children: Dict[int, List[Tag]] = {}
    for element in elements:
        for parent in element.parents:
            if id(parent) in by_id:
                children.setdefault(id(parent), []).append(element)
                break

    wrappers = set()
    for parent_id, nested in children.items():
        signatures = [_signature(child) for child in nested]
        if len(signatures) != len(set(signatures)):
            wrappers.add(parent_id)
            wrappers.update(id(p) for p in by_id[parent_id].parents if id(p) in by_id)

    return [element for element in elements if id(element) not in wrappers]


def find_containers(soup: Tag, selectors: Sequence[str]) -> List[Tag]:
    """Containers from the first selector that matches anything."""
    for selector in selectors:
        matches = _safe_select(soup, selector)
        if matches:
            return _outermost(_drop_list_wrappers(matches))
    return []


def _text(element: Tag) -> str:
    return " ".join(element.get_text(" ", strip=True).split())


def _value(element: Tag, attr: Optional[str], base_url: Optional[str]) -> str:
    if attr is None:
        return _text(element)
    value = element.get(attr)
    if isinstance(value, list):
        value = " ".join(value)
    value = (value or "").strip()
    if value and attr in ("href", "src") and base_url:
        value = urljoin(base_url, value)
    return value


def _split_candidate(candidate: Candidate) -> Tuple[str, Optional[str]]:
    if isinstance(candidate, tuple):
        return candidate[0], candidate[1]
    return candidate, None


def _header_cells(row: Tag) -> List[str]:
    """Lowercased header texts for the table a row belongs to, or [] if it has none."""
    table = row.find_parent("table")
    if table is None:
        return []
    for candidate_row in table.find_all("tr"):
        if candidate_row.find("th") and not candidate_row.find("td"):
            return [_text(cell).lower() for cell in candidate_row.find_all(["th", "td"])]
    return []


def _header_matches(header: str, keywords: Sequence[str]) -> bool:
    return any(re.search(rf"\b{re.escape(keyword)}\b", header) for keyword in keywords)


def _column_values(row: Tag, rules: EntityRules, base_url: Optional[str]) -> Optional[Dict[str, str]]:
    """
    Map a table row's cells onto fields using the table's header row.

    Returns None when the row is not in a table with a header. Each column is
    claimed by at most one field, in rule order.
    """
    if row.name != "tr":
        return None
    headers = _header_cells(row)
    if not headers:
        return None

    cells = row.find_all(["td", "th"], recursive=False)
    claimed = set()
    values: Dict[str, str] = {}

    for field_name, rule in rules.fields.items():
        if not rule.header_keywords:
            continue
        for index, header in enumerate(headers):
            if index in claimed or index >= len(cells):
                continue
            if not _header_matches(header, rule.header_keywords):
                continue
            claimed.add(index)
            cell = cells[index]
            value = ""
            # Attribute fields (mailto links, ...) read the first matching element in the cell
            for candidate in rule.candidates:
                selector, attr = _split_candidate(candidate)
                if attr is None:
                    continue
                for element in _safe_select(cell, selector, limit=1):
                    value = _value(element, attr, base_url)
                if value:
                    break
            values[field_name] = value or _text(cell)
            break

    return values


def extract_field(
    container: Tag,
    rule: FieldRule,
    columns: Optional[Dict[str, str]] = None,
    field_name: Optional[str] = None,
    base_url: Optional[str] = None
) -> str:
    """
    Value of one field for one container.

    Order: container attribute, header-mapped table column, selector
    candidates, regex over the container text, whole container text.
    Positional `td:` candidates are skipped when the table has a header.

    Returns:
        The first non-empty value, or "" when everything misses
    """
    if rule.container_attr:
        value = (container.get(rule.container_attr) or "").strip()
        if value:
            return value

    if columns is not None and field_name and columns.get(field_name):
        return columns[field_name]

    for candidate in rule.candidates:
        selector, attr = _split_candidate(candidate)
        if columns is not None and selector.startswith("td:"):
            continue
        matches = _safe_select(container, selector, limit=0 if rule.multiple else 10)
        values = [value for value in (_value(element, attr, base_url) for element in matches) if value]
        if values:
            return "; ".join(values) if rule.multiple else values[0]

    if rule.pattern is not None:
        match = rule.pattern.search(_text(container))
        if match:
            return match.group(0)

    if rule.fallback_to_text:
        return _text(container)

    return ""


def _is_valid(record: Dict[str, str], rules: EntityRules) -> bool:
    for name in rules.required:
        if not record.get(name):
            return False
    for name, minimum in rules.min_lengths.items():
        if len(record.get(name, "")) < minimum:
            return False
    for name, maximum in rules.max_lengths.items():
        if len(record.get(name, "")) > maximum:
            return False
    return True


def dedupe_records(records: List[Dict[str, str]], key_fields: Sequence[str]) -> List[Dict[str, str]]:
    """
    Collapse records sharing the same key, merging in non-empty values.

    The first occurrence keeps its position; later duplicates only fill its gaps.
    """
    if not key_fields:
        return records
    merged: Dict[Tuple[str, ...], Dict[str, str]] = {}
    for record in records:
        key = tuple(record.get(name, "").lower() for name in key_fields)
        existing = merged.get(key)
        if existing is None:
            merged[key] = dict(record)
            continue
        for name, value in record.items():
            if value and not existing.get(name):
                existing[name] = value
    return list(merged.values())


def extract(
    html: str,
    entity_type: EntityType,
    rules: Optional[EntityRules] = None,
    source: Optional[Source] = None,
    page_url: Optional[str] = None
) -> List[Dict[str, str]]:
    """
    Extract raw records of one entity type from a page.

    Args:
        html: Page markup
        entity_type: Which kind of record to look for
        rules: Explicit rules (default: built-in rules plus the source's overrides)
        source: Source whose selector overrides apply
        page_url: Used to resolve relative links

    Returns:
        List of field-name -> text dicts. Zero matches is an empty list, not an error.
    """
    rules = rules or rules_for(entity_type, source)
    soup = parse_html(html)

    records = []
    for container in find_containers(soup, rules.containers):
        columns = _column_values(container, rules, page_url)
        record = {
            name: extract_field(container, rule, columns, name, page_url)
            for name, rule in rules.fields.items()
        }
        if _is_valid(record, rules):
            records.append(record)

    records = dedupe_records(records, rules.dedupe_on)
    logger.debug(f"Extracted {len(records)} {entity_type.value} record(s) from {page_url or 'document'}")
    return records


# ============================================================================
# News feeds and articles
# ============================================================================

def _child_text(item: Tag, names: Sequence[str]) -> str:
    for name in names:
        child = item.find(name)
        if child is not None:
            text = child.get_text(" ", strip=True)
            if text:
                return text
    return ""


def parse_feed(xml: str, limit: Optional[int] = None) -> List[Dict[str, str]]:
    """
    Items of an RSS 2.0 or Atom feed.

    Returns:
        Dicts with title, link, description (markup stripped), published and author
    """
    soup = BeautifulSoup(xml or "", "xml")
    items = soup.find_all("item") or soup.find_all("entry")

    entries = []
    for item in items:
        link = _child_text(item, ["link"])
        if not link:
            link_tag = item.find("link", href=True)
            link = link_tag["href"] if link_tag is not None else ""

        description = _child_text(item, ["description", "summary", "content"])
        if description and "<" in description:
            description = _text(parse_html(description))

        entry = {
            "title": _child_text(item, ["title"]),
            "link": link.strip(),
            "description": " ".join(description.split()),
            "published": _child_text(item, ["pubDate", "published", "updated", "date"]),
            "author": _child_text(item, ["creator", "author"]),
        }
        if entry["title"] and entry["link"]:
            entries.append(entry)
        if limit is not None and len(entries) >= limit:
            break

    return entries


def extract_article_text(html: str, selectors: Sequence[str] = ARTICLE_PARAGRAPH_SELECTORS) -> str:
    """
    Body text of a news article from the first paragraph selector that matches.

    Very short paragraphs (bylines, captions) are skipped.
    """
    soup = parse_html(html)
    for selector in selectors:
        paragraphs = [_text(p) for p in _safe_select(soup, selector)]
        paragraphs = [p for p in paragraphs if len(p) > 20]
        if paragraphs:
            return " ".join(paragraphs)
    return ""
