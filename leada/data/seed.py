"""Default learning-package catalog and the idempotent seeding routine."""

from __future__ import annotations

import logging

from leada.data.activity_db import PackageDB
from leada.data.models import LearningPackage

logger = logging.getLogger(__name__)

# (title, description, category); every package runs 14 days with 2 units/day
CATALOG: list[tuple[str, str, str]] = [
    (
        "Konstruktives Feedback geben",
        "Lernen Sie, wie Sie Feedback so formulieren, dass es motiviert und "
        "weiterbringt. Entwickeln Sie Ihre Feedbackkultur.",
        "Kommunikation",
    ),
    (
        "Konflikte im Team lösen",
        "Konflikte professionell lösen und als Mediator zwischen Teammitgliedern "
        "agieren. Praxisnahe Techniken für den Arbeitsalltag.",
        "Konfliktmanagement",
    ),
    (
        "Effektiv delegieren",
        "Lernen Sie, Aufgaben strategisch zu delegieren, Mitarbeiter zu entwickeln "
        "und sich auf Ihre wichtigsten Führungsaufgaben zu konzentrieren.",
        "Delegation",
    ),
    (
        "Mitarbeiter motivieren",
        "Verstehen Sie, was Ihre Mitarbeiter antreibt und lernen Sie praxiserprobte "
        "Methoden, um intrinsische Motivation zu fördern.",
        "Motivation",
    ),
    (
        "Schwierige Gespräche führen",
        "Meistern Sie herausfordernde Mitarbeitergespräche - von Kritik über "
        "Kündigungen bis zu Leistungsproblemen.",
        "Kommunikation",
    ),
    (
        "Agile Führung",
        "Führen Sie in agilen Umgebungen erfolgreich. Scrum, Kanban und moderne "
        "Führungsansätze für dynamische Teams.",
        "Agilität",
    ),
    (
        "Resilienz aufbauen",
        "Stärken Sie Ihre psychische Widerstandskraft und lernen Sie, mit Stress "
        "und Herausforderungen umzugehen.",
        "Persönlichkeitsentwicklung",
    ),
    (
        "Effektives Zeitmanagement",
        "Optimieren Sie Ihre Zeit, setzen Sie Prioritäten richtig und erreichen "
        "Sie mehr mit weniger Stress.",
        "Produktivität",
    ),
    (
        "Design Thinking für Führungskräfte",
        "Innovative Problemlösungen entwickeln mit der Design-Thinking-Methode. "
        "Praxisnah und umsetzbar.",
        "Innovation",
    ),
    (
        "Remote Teams führen",
        "Erfolgreiche Führung verteilter Teams. Kommunikation, Vertrauen und "
        "Produktivität im Home-Office.",
        "Remote Leadership",
    ),
    (
        "Change Management",
        "Veränderungsprozesse erfolgreich gestalten und Ihr Team durch "
        "Transformationen führen.",
        "Veränderung",
    ),
    (
        "Strategisches Denken entwickeln",
        "Erweitern Sie Ihren strategischen Horizont und treffen Sie bessere "
        "langfristige Entscheidungen.",
        "Strategie",
    ),
]


def seed_catalog(package_db: PackageDB) -> list[LearningPackage]:
    """Insert every catalog package that is not present yet (matched by title).

    Returns the newly created packages.
    """
    created: list[LearningPackage] = []
    for title, description, category in CATALOG:
        if package_db.get_package_by_title(title) is not None:
            logger.debug("Package '%s' already present, skipping", title)
            continue
        created.append(
            package_db.add_package(
                title=title,
                description=description,
                category=category,
                duration=14,
                units_per_day=2,
            )
        )
    logger.info("Seeded %d of %d catalog packages", len(created), len(CATALOG))
    return created
