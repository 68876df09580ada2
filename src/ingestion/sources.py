"""
Source registry.

Static catalog of the government websites we scrape and the news feeds we
pull. Sources are frozen models built once at import; nothing here touches
the network or the database.

Usage:
    from src.ingestion.sources import get_sources, get_source
    for source in get_sources(level=GovernmentLevel.PROVINCIAL):
        print(source.name, source.url_for(EntityType.OFFICIALS))
"""
from typing import Dict, List, Optional

from src.config.constants import TIER_DAILY, TIER_FREQUENT, TIER_WEEKLY
from src.models.source import (
    EntityType,
    GovernmentLevel,
    NewsSource,
    PoliticalLean,
    Source,
)

OFFICIALS = EntityType.OFFICIALS
BILLS = EntityType.BILLS
VOTES = EntityType.VOTES
STATEMENTS = EntityType.STATEMENTS
COMMITTEES = EntityType.COMMITTEES
ELECTIONS = EntityType.ELECTIONS

FEDERAL = GovernmentLevel.FEDERAL
PROVINCIAL = GovernmentLevel.PROVINCIAL
MUNICIPAL = GovernmentLevel.MUNICIPAL


# ============================================================================
# Federal
# ============================================================================

FEDERAL_SOURCES = [
    Source(
        name="Parliament of Canada",
        base_url="https://www.parl.ca",
        level=FEDERAL,
        jurisdiction="Canada",
        endpoints={
            OFFICIALS: "/members/en/search/members-search",
            BILLS: "/legisinfo/en/bills",
            VOTES: "/members/en/votes/house",
            STATEMENTS: "/DocumentViewer/en/house/latest/hansard",
            COMMITTEES: "/committees/en/home",
        },
        crawl_frequency_hours=6,
        rate_limit_per_minute=60,
        container_selectors={
            BILLS: ["table.bill-table tbody tr", ".bill-tile"],
        },
        field_selectors={
            BILLS: {"bill_number": [".bill-number", "td.bill-id"], "status": [".bill-status", ".latest-stage"]},
        },
    ),
    Source(
        name="House of Commons",
        base_url="https://www.ourcommons.ca",
        level=FEDERAL,
        jurisdiction="Canada",
        endpoints={
            OFFICIALS: "/members/en",
            VOTES: "/members/en/votes",
            COMMITTEES: "/committees/en",
        },
        crawl_frequency_hours=6,
        rate_limit_per_minute=120,
        container_selectors={
            OFFICIALS: [".ce-mip-mp-tile-container", ".ce-mip-mp-tile"],
        },
        field_selectors={
            OFFICIALS: {
                "name": [".ce-mip-mp-name"],
                "party": [".ce-mip-mp-party"],
                "constituency": [".ce-mip-mp-constituency"],
            },
        },
    ),
    Source(
        name="Senate of Canada",
        base_url="https://sencanada.ca",
        level=FEDERAL,
        jurisdiction="Canada",
        endpoints={
            OFFICIALS: "/en/senators",
            BILLS: "/en/in-the-chamber/bills",
            COMMITTEES: "/en/committees",
        },
        crawl_frequency_hours=24,
        rate_limit_per_minute=60,
    ),
    Source(
        name="Elections Canada",
        base_url="https://www.elections.ca",
        level=FEDERAL,
        jurisdiction="Canada",
        endpoints={
            ELECTIONS: "/content.aspx?section=ele&dir=pas&document=index",
        },
        crawl_frequency_hours=168,
        rate_limit_per_minute=30,
    ),
]


# ============================================================================
# Provincial and territorial legislatures
# ============================================================================

def _legislature(
    name: str,
    base_url: str,
    jurisdiction: str,
    members: str,
    bills: str,
    hansard: Optional[str] = None,
    committees: Optional[str] = None,
    crawl_frequency_hours: int = 24,
    rate_limit_per_minute: int = 60
) -> Source:
    endpoints = {OFFICIALS: members, BILLS: bills}
    if hansard:
        endpoints[STATEMENTS] = hansard
    if committees:
        endpoints[COMMITTEES] = committees
    return Source(
        name=name,
        base_url=base_url,
        level=PROVINCIAL,
        jurisdiction=jurisdiction,
        endpoints=endpoints,
        crawl_frequency_hours=crawl_frequency_hours,
        rate_limit_per_minute=rate_limit_per_minute,
    )


PROVINCIAL_SOURCES = [
    _legislature(
        "Legislative Assembly of Ontario", "https://www.ola.org", "Ontario",
        members="/en/members/current",
        bills="/en/legislative-business/bills/current",
        hansard="/en/legislative-business/house-documents",
        committees="/en/legislative-business/committees",
        crawl_frequency_hours=12,
    ),
    _legislature(
        "National Assembly of Quebec", "https://www.assnat.qc.ca", "Quebec",
        members="/en/deputes/index.html",
        bills="/en/travaux-parlementaires/projets-loi/projets-loi-43-1.html",
        committees="/en/travaux-parlementaires/commissions/index.html",
        crawl_frequency_hours=12,
    ),
    _legislature(
        "Legislative Assembly of British Columbia", "https://www.leg.bc.ca", "British Columbia",
        members="/members",
        bills="/parliamentary-business/overview/bills",
        hansard="/documents-data/debate-transcripts",
        committees="/parliamentary-business/committees",
        crawl_frequency_hours=12,
    ),
    _legislature(
        "Legislative Assembly of Alberta", "https://www.assembly.ab.ca", "Alberta",
        members="/members/members-of-the-legislative-assembly",
        bills="/assembly-business/bills",
        hansard="/assembly-records/hansard-transcripts",
        committees="/assembly-business/committees",
    ),
    _legislature(
        "Legislative Assembly of Saskatchewan", "https://www.legassembly.sk.ca", "Saskatchewan",
        members="/mlas",
        bills="/legislative-business/bills",
        committees="/legislative-business/legislative-committees",
    ),
    _legislature(
        "Legislative Assembly of Manitoba", "https://www.gov.mb.ca/legislature", "Manitoba",
        members="members/mla_list_alphabetical.html",
        bills="business/bills.html",
        committees="committees/index.html",
    ),
    _legislature(
        "Legislative Assembly of New Brunswick", "https://www.legnb.ca", "New Brunswick",
        members="/en/members/current",
        bills="/en/legislation/bills",
        committees="/en/committees",
    ),
    _legislature(
        "Nova Scotia House of Assembly", "https://nslegislature.ca", "Nova Scotia",
        members="/members/profiles",
        bills="/legislative-business/bills-statutes",
        hansard="/legislative-business/hansard-debates",
        committees="/legislative-business/committees",
    ),
    _legislature(
        "Legislative Assembly of Prince Edward Island", "https://www.assembly.pe.ca", "Prince Edward Island",
        members="/members",
        bills="/legislative-business/house-records/bills",
        crawl_frequency_hours=72,
        rate_limit_per_minute=30,
    ),
    _legislature(
        "House of Assembly of Newfoundland and Labrador", "https://www.assembly.nl.ca",
        "Newfoundland and Labrador",
        members="/Members/members.aspx",
        bills="/HouseBusiness/Bills/",
        crawl_frequency_hours=72,
        rate_limit_per_minute=30,
    ),
    _legislature(
        "Legislative Assembly of the Northwest Territories", "https://www.ntassembly.ca",
        "Northwest Territories",
        members="/members",
        bills="/documents-proceedings/bills",
        crawl_frequency_hours=72,
        rate_limit_per_minute=30,
    ),
    _legislature(
        "Yukon Legislative Assembly", "https://yukonassembly.ca", "Yukon",
        members="/mlas",
        bills="/house-business/progress-bills",
        crawl_frequency_hours=72,
        rate_limit_per_minute=30,
    ),
    _legislature(
        "Legislative Assembly of Nunavut", "https://www.assembly.nu.ca", "Nunavut",
        members="/members/mla",
        bills="/bills-and-legislation",
        crawl_frequency_hours=72,
        rate_limit_per_minute=30,
    ),
]


def _election_agency(name: str, base_url: str, jurisdiction: str, path: str) -> Source:
    return Source(
        name=name,
        base_url=base_url,
        level=PROVINCIAL,
        jurisdiction=jurisdiction,
        endpoints={ELECTIONS: path},
        crawl_frequency_hours=168,
        rate_limit_per_minute=20,
    )


ELECTION_AGENCY_SOURCES = [
    _election_agency("Elections Ontario", "https://www.elections.on.ca", "Ontario",
                     "/en/resource-centre/elections-results.html"),
    _election_agency("Elections Quebec", "https://www.electionsquebec.qc.ca", "Quebec",
                     "/en/results-and-statistics/"),
    _election_agency("Elections BC", "https://elections.bc.ca", "British Columbia",
                     "/resources/results/"),
    _election_agency("Elections Alberta", "https://www.elections.ab.ca", "Alberta",
                     "/resources/reports/"),
]


# ============================================================================
# Municipal
# ============================================================================

def _city(name: str, base_url: str, jurisdiction: str, council: str, rate_limit_per_minute: int = 30) -> Source:
    return Source(
        name=name,
        base_url=base_url,
        level=MUNICIPAL,
        jurisdiction=jurisdiction,
        endpoints={OFFICIALS: council},
        crawl_frequency_hours=168,
        rate_limit_per_minute=rate_limit_per_minute,
    )


MUNICIPAL_SOURCES = [
    _city("City of Toronto", "https://www.toronto.ca", "Toronto",
          "/city-government/council/members-of-council/"),
    _city("Ville de Montreal", "https://montreal.ca", "Montreal",
          "/en/city-council-members"),
    _city("City of Vancouver", "https://vancouver.ca", "Vancouver",
          "/your-government/vancouver-city-council.aspx"),
    _city("City of Calgary", "https://www.calgary.ca", "Calgary",
          "/council.html"),
    _city("City of Ottawa", "https://ottawa.ca", "Ottawa",
          "/en/city-hall/mayor-and-city-councillors"),
    _city("City of Edmonton", "https://www.edmonton.ca", "Edmonton",
          "/city_government/city_organization/city-councillors"),
    _city("City of Winnipeg", "https://www.winnipeg.ca", "Winnipeg",
          "/council/"),
    _city("Halifax Regional Municipality", "https://www.halifax.ca", "Halifax",
          "/city-hall/districts-councillors"),
    _city("City of Hamilton", "https://www.hamilton.ca", "Hamilton",
          "/city-council/council-committee/mayor-councillors", rate_limit_per_minute=20),
    _city("City of Mississauga", "https://www.mississauga.ca", "Mississauga",
          "/council/your-council/", rate_limit_per_minute=20),
]


SOURCE_REGISTRY: List[Source] = (
    FEDERAL_SOURCES + PROVINCIAL_SOURCES + ELECTION_AGENCY_SOURCES + MUNICIPAL_SOURCES
)

_SOURCES_BY_NAME: Dict[str, Source] = {source.name: source for source in SOURCE_REGISTRY}


# ============================================================================
# Lookups
# ============================================================================

def get_sources(
    level: Optional[GovernmentLevel] = None,
    entity_type: Optional[EntityType] = None,
    tier: Optional[str] = None,
    names: Optional[List[str]] = None
) -> List[Source]:
    """
    Registry sources matching every given filter, in registry order.

    Args:
        level: Only sources at this level of government
        entity_type: Only sources with an endpoint for this entity type
        tier: Only sources in this crawl tier (frequent, daily, weekly)
        names: Only sources with these names (case-insensitive)

    Returns:
        List of matching sources
    """
    wanted = {name.lower() for name in names} if names else None
    return [
        source for source in SOURCE_REGISTRY
        if (level is None or source.level == level)
        and (entity_type is None or source.supplies(entity_type))
        and (tier is None or source.tier == tier)
        and (wanted is None or source.name.lower() in wanted)
    ]


def get_source(name: str) -> Optional[Source]:
    """Look up a single source by exact name."""
    return _SOURCES_BY_NAME.get(name)


def sources_by_tier() -> Dict[str, List[Source]]:
    """Registry grouped into crawl tiers."""
    tiers: Dict[str, List[Source]] = {TIER_FREQUENT: [], TIER_DAILY: [], TIER_WEEKLY: []}
    for source in SOURCE_REGISTRY:
        tiers[source.tier].append(source)
    return tiers


# ============================================================================
# News feeds
# ============================================================================

NEWS_SOURCES: List[NewsSource] = [
    NewsSource(name="CBC News", feed_url="https://www.cbc.ca/cmlink/rss-politics",
               political_lean=PoliticalLean.CENTER_LEFT, credibility_score=85),
    NewsSource(name="CTV News", feed_url="https://www.ctvnews.ca/rss/ctvnews-ca-politics-public-rss-1.822302",
               political_lean=PoliticalLean.CENTER, credibility_score=83),
    NewsSource(name="Global News", feed_url="https://globalnews.ca/politics/feed/",
               political_lean=PoliticalLean.CENTER, credibility_score=82),
    NewsSource(name="The Globe and Mail",
               feed_url="https://www.theglobeandmail.com/arc/outboundfeeds/rss/category/politics/",
               political_lean=PoliticalLean.CENTER, credibility_score=88),
    NewsSource(name="National Post", feed_url="https://nationalpost.com/category/news/politics/feed",
               political_lean=PoliticalLean.CENTER_RIGHT, credibility_score=78),
    NewsSource(name="Toronto Star", feed_url="https://www.thestar.com/politics.rss",
               political_lean=PoliticalLean.CENTER_LEFT, credibility_score=79),
    NewsSource(name="The Canadian Press", feed_url="https://www.thecanadianpress.com/feed/",
               political_lean=PoliticalLean.CENTER, credibility_score=90),
    NewsSource(name="iPolitics", feed_url="https://ipolitics.ca/feed/",
               political_lean=PoliticalLean.CENTER, credibility_score=81),
    NewsSource(name="The Hill Times", feed_url="https://www.hilltimes.com/feed/",
               political_lean=PoliticalLean.CENTER, credibility_score=86),
    NewsSource(name="Policy Options", feed_url="https://policyoptions.irpp.org/feed/",
               political_lean=PoliticalLean.CENTER, credibility_score=89),
    NewsSource(name="Calgary Herald", feed_url="https://calgaryherald.com/feed/",
               political_lean=PoliticalLean.CENTER_RIGHT, credibility_score=76),
    NewsSource(name="Winnipeg Free Press", feed_url="https://www.winnipegfreepress.com/rss/",
               political_lean=PoliticalLean.CENTER, credibility_score=80),
    NewsSource(name="The Tyee", feed_url="https://thetyee.ca/rss2.xml",
               political_lean=PoliticalLean.LEFT, credibility_score=74),
    NewsSource(name="National Observer", feed_url="https://www.nationalobserver.com/rss.xml",
               political_lean=PoliticalLean.LEFT, credibility_score=76),
    NewsSource(name="Le Devoir", feed_url="https://www.ledevoir.com/rss/section/politique.xml",
               political_lean=PoliticalLean.CENTER_LEFT, credibility_score=84, language="fr"),
    NewsSource(name="Radio-Canada", feed_url="https://ici.radio-canada.ca/rss/4159",
               political_lean=PoliticalLean.CENTER, credibility_score=87, language="fr"),
]


def get_news_sources(language: Optional[str] = None) -> List[NewsSource]:
    """News outlets, optionally only those publishing in one language."""
    if language is None:
        return list(NEWS_SOURCES)
    return [source for source in NEWS_SOURCES if source.language == language]
