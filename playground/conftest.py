# playground/conftest.py

"""
[Responsibility] Shared gate fixtures: an in-memory aiosqlite knowledge store (schema created per test),
                 a small seeded dataset, and a capture handler on the project logger.
[Boundary] No network, no Milvus, no Redis; every test gets a fresh database.
[Downstream] sql/pattern/keyword/semantic/retrieval/ratelimit/fastapi gates.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import AsyncIterator, Iterator, List

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from poligraph_rag.backend.db.models import (
    AffairModel,
    AffairSourceModel,
    Base,
    DeclarationModel,
    FactCheckModel,
    LegislativeDossierModel,
    MandateModel,
    PartyModel,
    PoliticianModel,
    PressArticleModel,
    ScrutinModel,
    VoteModel,
)
from poligraph_rag.backend.db.repo import KnowledgeStore
from poligraph_rag.backend.utils.logging_ import DEFAULT_LOGGER_NAME


REFERENCE_DATE = date(2025, 6, 1)  # docstring: fixed "today" for temporal assertions


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,  # docstring: one shared connection keeps the in-memory DB alive
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with maker() as s:
        yield s


def _utc(y: int, m: int, d: int) -> datetime:
    return datetime(y, m, d, 8, 0, tzinfo=timezone.utc)


async def seed_knowledge(engine: AsyncEngine) -> None:
    """Small dataset covering every table the retrieval tiers read (one accented capital name included)."""
    maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with maker() as s:
        horizons = PartyModel(name="Horizons", short_name="HOR", slug="horizons")
        civique = PartyModel(name="Union Civique", short_name="UC", slug="union-civique")

        dupont = PoliticianModel(
            slug="jean-dupont",
            civility="M.",
            first_name="Jean",
            last_name="Dupont",
            full_name="Jean Dupont",
            birth_date=date(1970, 5, 12),
            current_party=horizons,
        )
        martin = PoliticianModel(
            slug="marie-martin",
            civility="Mme",
            first_name="Marie",
            last_name="Martin",
            full_name="Marie Martin",
            current_party=civique,
        )
        bernard = PoliticianModel(
            slug="paul-bernard",
            civility="M.",
            first_name="Paul",
            last_name="Bernard",
            full_name="Paul Bernard",
            current_party=horizons,
        )
        petit = PoliticianModel(
            slug="claire-petit",
            civility="Mme",
            first_name="Claire",
            last_name="Petit",
            full_name="Claire Petit",
        )
        senechal = PoliticianModel(
            slug="elodie-senechal",
            civility="Mme",
            first_name="Élodie",
            last_name="Sénéchal",
            full_name="Élodie Sénéchal",
            birth_date=date(1981, 2, 3),
        )

        mandates = [
            MandateModel(
                politician=dupont,
                type="DEPUTE",
                title="Député de la 1re circonscription de l'Isère",
                department_code="38",
                start_date=date(2022, 7, 1),
            ),
            MandateModel(
                politician=martin,
                type="SENATEUR",
                title="Sénatrice de l'Isère",
                department_code="38",
                start_date=date(2020, 10, 1),
            ),
            MandateModel(politician=bernard, type="MINISTRE", title="Ministre de l'Intérieur"),
            MandateModel(politician=petit, type="PREMIER_MINISTRE", title="Première ministre"),
            MandateModel(
                politician=bernard,
                type="DEPUTE",
                title="Député du Rhône",
                department_code="69",
                is_current=False,
                end_date=date(2022, 6, 30),
            ),
        ]

        declaration = DeclarationModel(
            politician=dupont,
            type="SITUATION_PATRIMONIALE",
            year=2023,
            total_net=1234567,
            real_estate=800000,
            bank_accounts=15000,
        )

        open_affair = AffairModel(
            politician=dupont,
            title="Affaire des emplois fictifs",
            description="Soupçons d'emplois fictifs d'assistants parlementaires.",
            status="MISE_EN_EXAMEN",
            facts_date=date(2021, 3, 1),
            publication_status="PUBLISHED",
        )
        AffairSourceModel(affair=open_affair, position=0, url="https://example.org/emplois-fictifs")
        AffairSourceModel(affair=open_affair, position=1, url="javascript:alert(1)")
        draft_affair = AffairModel(
            politician=dupont,
            title="Affaire brouillon",
            status="ENQUETE_PRELIMINAIRE",
            publication_status="DRAFT",
        )
        closed_affair = AffairModel(
            politician=martin,
            title="Affaire du marché public",
            status="CONDAMNATION_DEFINITIVE",
            facts_date=date(2015, 6, 1),
            publication_status="PUBLISHED",
        )

        budget = LegislativeDossierModel(
            slug="plf-2024",
            title="Projet de loi de finances pour 2024",
            short_title="Budget 2024",
            status="ADOPTE",
            category="Économie",
            filing_date=date(2024, 3, 10),
        )
        housing = LegislativeDossierModel(
            slug="logement-etudiant",
            title="Proposition de loi sur le logement étudiant",
            short_title="Logement étudiant",
            status="EN_COURS",
            category="Logement",
            filing_date=date(2025, 2, 1),
        )

        finances_vote = ScrutinModel(
            slug="scrutin-plf-2024",
            title="Vote sur l'ensemble du projet de loi de finances pour 2024",
            voting_date=date(2024, 12, 10),
            result="ADOPTED",
            votes_for=300,
            votes_against=200,
            votes_abstain=20,
        )
        censure_vote = ScrutinModel(
            slug="motion-censure-2025",
            title="Motion de censure du gouvernement",
            voting_date=date(2025, 1, 15),
            result="REJECTED",
            votes_for=120,
            votes_against=0,
            votes_abstain=0,
        )
        votes = [
            VoteModel(scrutin=finances_vote, politician=dupont, position="POUR"),
            VoteModel(scrutin=censure_vote, politician=dupont, position="CONTRE"),
        ]

        articles = [
            PressArticleModel(
                title="Motion de censure : le gouvernement tient",
                feed_source="Le Monde",
                url="https://www.lemonde.fr/motion-censure",
                published_at=_utc(2025, 1, 16),
            ),
            PressArticleModel(
                title="Le logement etudiant en question",
                feed_source="Libération",
                url="https://www.liberation.fr/logement-etudiant",
                published_at=_utc(2025, 2, 5),
            ),
        ]

        fact_check = FactCheckModel(
            slug="chiffres-chomage",
            title="Les chiffres du chômage",
            verdict="Trompeur",
            source_name="AFP Factuel",
            published_at=_utc(2025, 3, 1),
        )

        s.add_all(
            [
                horizons,
                civique,
                dupont,
                martin,
                bernard,
                petit,
                senechal,
                *mandates,
                declaration,
                open_affair,
                draft_affair,
                closed_affair,
                budget,
                housing,
                finances_vote,
                censure_vote,
                *votes,
                *articles,
                fact_check,
            ]
        )
        await s.commit()


@pytest_asyncio.fixture
async def seeded_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Fresh session over the seeded DB (nothing pre-loaded in its identity map)."""
    await seed_knowledge(engine)
    maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with maker() as s:
        yield s


@pytest_asyncio.fixture
async def store(seeded_session: AsyncSession) -> KnowledgeStore:
    return KnowledgeStore.from_session(seeded_session)


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def log_records() -> Iterator[List[logging.LogRecord]]:
    """Records reaching the project root logger (it does not propagate to the root, so caplog misses them)."""
    handler = _ListHandler()
    project_logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    project_logger.addHandler(handler)
    try:
        yield handler.records
    finally:
        project_logger.removeHandler(handler)
