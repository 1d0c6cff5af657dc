"""
Default organizations and dropdown values.
Applied on startup; each group is only seeded into an empty table so admin
edits and deletions survive restarts.
"""
import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..db import Base
from ..models.models import Organization, ReferenceData


logger = structlog.get_logger()


ORGANIZATIONS = [
    # id, name, code, country, currency, timezone offset
    ("1pwr_lesotho", "1PWR Lesotho", "1PWR-LS", "LS", "LSL", 2),
    ("1pwr_zambia", "1PWR Zambia", "1PWR-ZM", "ZM", "ZMW", 2),
    ("1pwr_benin", "1PWR Benin", "1PWR-BN", "BJ", "XOF", 1),
]

SITES = {
    "1pwr_lesotho": [
        ("HQ", "HQ (Maseru)", 1),
        ("MAK", "Makhunoane", 2),
        ("MAS", "Masianokeng", 3),
        ("SEB", "Semonkong/Sebapala", 4),
        ("MAT", "Matsieng", 5),
        ("LEB", "Lebelonyane", 6),
        ("SEH", "Sehlabathebe", 7),
        ("QN", "Qacha's Nek", 8),
        ("TY", "Thaba-Tseka/Teyateyaneng", 9),
        ("BFN", "Bloemfontein", 10),
        ("JHB", "Johannesburg", 11),
        ("OTHER", "Other", 99),
    ],
    "1pwr_zambia": [
        ("LSK", "Lusaka HQ", 1),
        ("KIT", "Kitwe", 2),
        ("NDL", "Ndola", 3),
    ],
    "1pwr_benin": [
        ("COT", "Cotonou HQ", 1),
    ],
}

MISSION_TYPES = [
    ("fleet-mission", "Fleet Mission", 1),
    ("site-delivery", "Site Delivery", 2),
    ("procurement", "Procurement Run", 3),
    ("registration", "Vehicle Registration", 4),
    ("o&m-mission", "O&M Mission", 5),
    ("ehs-mission", "EHS Mission", 6),
    ("1meter-mission", "1Meter Mission", 7),
    ("other", "Other", 99),
]

THIRD_PARTY_SHOPS = {
    "1pwr_lesotho": [
        ("BFN_SHOP", "BFN (Bloemfontein)", 1),
        ("DELTER", "Delter", 2),
        ("ECU_EXPRESS", "ECU Express", 3),
        ("JOHN_WILLIAMS", "John Williams", 4),
        ("MIDAS", "Midas", 5),
        ("AUTO_ELECTRICAL", "Auto Electrical", 6),
        ("DRIVELINE", "Driveline Shop", 7),
    ],
}


def default_reference_data():
    """Yield (organization_id, type, code, label, sort_order) for every default row."""
    for org, sites in SITES.items():
        for code, label, sort in sites:
            yield org, "site", code, label, sort
    for org, *_ in ORGANIZATIONS:
        for code, label, sort in MISSION_TYPES:
            yield org, "mission_type", code, label, sort
    for org, shops in THIRD_PARTY_SHOPS.items():
        for code, label, sort in shops:
            yield org, "third_party_shop", code, label, sort


def seed_defaults(db: Session) -> None:
    if db.query(Organization).count() == 0:
        for org_id, name, code, country, currency, tz_offset in ORGANIZATIONS:
            db.add(Organization(
                id=org_id,
                name=name,
                code=code,
                country=country,
                currency=currency,
                timezone_offset=tz_offset,
            ))
        logger.info("seeded_organizations", count=len(ORGANIZATIONS))

    if db.query(ReferenceData).count() == 0:
        count = 0
        for org, ref_type, code, label, sort in default_reference_data():
            db.add(ReferenceData(
                organization_id=org,
                type=ref_type,
                code=code,
                label=label,
                sort_order=sort,
            ))
            count += 1
        logger.info("seeded_reference_data", count=count)
    db.commit()


def init_db(engine: Engine, session_factory: sessionmaker) -> None:
    """Create tables and seed defaults. Safe to run on every start."""
    Base.metadata.create_all(bind=engine)
    db = session_factory()
    try:
        seed_defaults(db)
    finally:
        db.close()
