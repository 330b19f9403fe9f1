"""Keyword-based genre, sub-genre and theme detection for manuscripts.

Each genre has a keyword lexicon plus sub-genre lexicons. Keyword hits are
normalized per 1,000 words; 3 hits per 1k words is full confidence. The
project-level view sums confidences across books to pick a series genre.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass
from functools import lru_cache

from novelmap.db import manuscript_store, project_store
from novelmap.models.analysis import GenreAnalysis, GenreSignal, ProjectGenreAnalysis

logger = logging.getLogger(__name__)

FALLBACK_GENRE = "General Fiction"

_GENRE_MIN_SCORE = 0.05
_SUB_GENRE_MIN_SCORE = 0.1
_THEME_MIN_SCORE = 0.15
_FULL_CONFIDENCE_SCORE = 3.0
_MAX_MARKERS = 10
_MAX_THEMES = 6
_MAX_CATEGORIES = 6


@dataclass(frozen=True)
class _Profile:
    genre: str
    keywords: tuple[str, ...]
    sub_genres: tuple[tuple[str, tuple[str, ...]], ...]


_PROFILES: tuple[_Profile, ...] = (
    _Profile(
        "Thriller",
        (
            "assassin", "operative", "surveillance", "classified", "covert",
            "detonation", "hostage", "extraction", "intelligence", "agency",
            "target", "protocol", "threat", "countdown", "abort", "mission",
            "sniper", "tactical", "secure channel", "dead drop", "handler",
            "safehouse", "asset", "compromised", "exfiltrate", "cipher",
            "interrogation", "perimeter", "backup", "eliminate", "strike team",
        ),
        (
            ("Techno-Thriller", (
                "satellite", "cyber", "hack", "encryption", "server", "drone",
                "algorithm", "firewall", "ai", "artificial intelligence", "neural",
                "quantum", "network", "malware", "ransomware", "biometric",
                "surveillance system", "darknet", "blockchain", "exploit",
                "zero-day", "backdoor", "payload", "silicon", "processor",
            )),
            ("Political Thriller", (
                "senator", "president", "cabinet", "diplomat", "embassy",
                "parliament", "coalition", "treaty", "sanctions", "geopolitical",
                "administration", "chief of staff", "secretary of state",
                "nato", "united nations", "summit", "bilateral", "regime",
                "coup", "election", "campaign", "lobbyist", "congressional",
            )),
            ("Spy Thriller", (
                "mi6", "cia", "mossad", "fsb", "kgb", "double agent",
                "mole", "tradecraft", "legend", "cover identity", "sleeper",
                "defector", "station chief", "case officer", "burned",
            )),
            ("Legal Thriller", (
                "attorney", "verdict", "plaintiff", "defendant", "courtroom",
                "judge", "jury", "deposition", "objection", "counsel",
                "prosecution", "defense", "testimony", "cross-examine", "statute",
            )),
            ("Medical Thriller", (
                "pathogen", "outbreak", "quarantine", "vaccine", "pandemic",
                "contagion", "cdc", "lab", "specimen", "clinical trial",
                "patient zero", "biosafety", "autopsy", "viral", "mutation",
            )),
        ),
    ),
    _Profile(
        "Science Fiction",
        (
            "starship", "galaxy", "planet", "orbit", "light-year", "warp",
            "colony", "alien", "species", "terraforming", "cryogenic",
            "faster than light", "space station", "hyperspace", "nebula",
            "android", "cyborg", "nanobots", "hologram", "teleport",
            "fusion reactor", "antimatter", "interstellar", "parsec",
        ),
        (
            ("Space Opera", (
                "empire", "fleet", "admiral", "rebellion", "galactic",
                "federation", "armada", "battleship", "cruiser", "sector",
            )),
            ("Cyberpunk", (
                "neon", "implant", "augmented", "megacorp", "street samurai",
                "netrunner", "chrome", "jack in", "datajack", "sprawl",
            )),
            ("Hard Science Fiction", (
                "orbital mechanics", "delta-v", "thrust", "radiation shielding",
                "relativistic", "lagrange point", "acceleration", "mass ratio",
            )),
            ("Dystopian", (
                "ration", "sector", "compliance", "citizen", "surveillance state",
                "re-education", "curfew", "resistance", "underground", "permit",
            )),
        ),
    ),
    _Profile(
        "Fantasy",
        (
            "magic", "spell", "wizard", "sorcerer", "enchant", "rune",
            "dragon", "elf", "dwarf", "kingdom", "throne", "quest",
            "prophecy", "ancient", "mystical", "potion", "conjure",
            "tome", "grimoire", "incantation", "ward", "arcane",
            "sword", "shield", "castle", "knight", "realm", "oath",
        ),
        (
            ("Epic Fantasy", (
                "chosen one", "dark lord", "army", "siege", "battle",
                "heir", "bloodline", "fate", "destiny", "war council",
            )),
            ("Urban Fantasy", (
                "city", "apartment", "subway", "detective", "precinct",
                "supernatural", "vampire", "werewolf", "fae", "portal",
            )),
            ("Dark Fantasy", (
                "blood", "shadow", "death", "necromancer", "undead",
                "corruption", "curse", "torment", "abyss", "demon",
            )),
            ("Grimdark", (
                "mercenary", "sellsword", "grim", "bleak", "betrayal",
                "cynical", "brutal", "ruthless", "scarred", "ravaged",
            )),
        ),
    ),
    _Profile(
        "Mystery",
        (
            "detective", "clue", "suspect", "alibi", "motive", "evidence",
            "forensic", "crime scene", "witness", "homicide", "investigate",
            "whodunit", "red herring", "case", "autopsy", "victim",
        ),
        (
            ("Cozy Mystery", (
                "bakery", "cat", "village", "knitting", "book club",
                "tea", "garden", "antique", "inn", "neighborly",
            )),
            ("Noir", (
                "dame", "gumshoe", "rain", "alley", "whiskey",
                "smoke", "shadows", "two-timing", "double-cross", "seedy",
            )),
            ("Police Procedural", (
                "precinct", "lieutenant", "badge", "forensics", "ballistics",
                "warrant", "booking", "perp", "collar", "dispatch",
            )),
        ),
    ),
    _Profile(
        "Romance",
        (
            "kiss", "heart", "love", "desire", "passion", "embrace",
            "longing", "chemistry", "attraction", "gaze", "tender",
            "blush", "sigh", "whisper", "caress", "intimate",
        ),
        (
            ("Contemporary Romance", (
                "coffee shop", "office", "dating app", "roommate",
                "best friend", "second chance", "workplace", "holiday",
            )),
            ("Historical Romance", (
                "duke", "duchess", "regency", "corset", "ballroom",
                "carriage", "lord", "lady", "manor", "chaperone",
            )),
            ("Romantic Suspense", (
                "protect", "danger", "bodyguard", "safe house", "threat",
                "stalker", "witness protection", "undercover",
            )),
            ("Paranormal Romance", (
                "vampire", "shifter", "mate", "pack", "alpha",
                "immortal", "fated", "bond", "supernatural",
            )),
        ),
    ),
    _Profile(
        "Horror",
        (
            "scream", "terror", "dread", "nightmare", "horror",
            "creature", "dark", "blood", "corpse", "haunted",
            "sinister", "malevolent", "grotesque", "lurk", "prey",
        ),
        (
            ("Psychological Horror", (
                "paranoia", "hallucination", "insanity", "delusion",
                "obsession", "unreliable", "perception", "madness",
            )),
            ("Cosmic Horror", (
                "elder", "void", "incomprehensible", "tentacle", "ancient",
                "cult", "ritual", "forbidden knowledge", "sanity",
            )),
            ("Gothic Horror", (
                "manor", "attic", "secret passage", "candelabra",
                "gargoyle", "mist", "raven", "crypt", "ancestral",
            )),
        ),
    ),
    _Profile(
        "Literary Fiction",
        (
            "reflection", "memory", "consciousness", "identity", "mortality",
            "solitude", "longing", "nostalgia", "epiphany", "introspection",
            "melancholy", "existential", "disillusion", "alienation",
        ),
        (
            ("Historical Fiction", (
                "century", "era", "colonial", "war", "revolution",
                "dynasty", "ancient", "medieval", "victorian", "antebellum",
            )),
            ("Coming of Age", (
                "adolescent", "growing up", "first love", "innocence",
                "adulthood", "school", "graduation", "summer",
            )),
        ),
    ),
)

_THEMES: dict[str, tuple[str, ...]] = {
    "power & corruption": ("power", "corrupt", "tyrant", "oppression", "authoritarian", "regime", "control"),
    "identity & belonging": ("identity", "belonging", "outsider", "exile", "homeland", "refugee", "immigrant"),
    "technology & humanity": ("artificial intelligence", "ai", "human", "machine", "consciousness", "singularity", "ethics"),
    "war & conflict": ("war", "battle", "soldier", "civilian", "casualty", "ceasefire", "armistice", "invasion"),
    "love & loss": ("love", "loss", "grief", "mourning", "heartbreak", "separation", "reunion"),
    "justice & morality": ("justice", "moral", "ethical", "right", "wrong", "innocent", "guilty", "judge"),
    "survival & resilience": ("survive", "resilience", "endure", "overcome", "struggle", "persevere", "grit"),
    "betrayal & trust": ("betray", "trust", "loyal", "treachery", "deceive", "secret", "lie", "truth"),
    "freedom & oppression": ("freedom", "liberty", "oppression", "chains", "escape", "captive", "liberate"),
    "redemption": ("redeem", "redemption", "forgive", "atone", "second chance", "repent", "salvation"),
    "sacrifice": ("sacrifice", "cost", "price", "give up", "martyr", "selfless"),
    "family & legacy": ("family", "father", "mother", "child", "heir", "legacy", "generation", "ancestor"),
}

# Theme -> extra category it implies
_THEME_CATEGORIES = (
    ("technology & humanity", "FICTION / Science Fiction / High Tech"),
    ("war & conflict", "FICTION / War & Military"),
    ("power & corruption", "FICTION / Political"),
)

# A keyword only counts between whitespace, punctuation, or the text edges
_BOUNDARY = "\\s.,;:!?'\"()\\-\u2014"


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> re.Pattern:
    return re.compile(rf"(?<![^{_BOUNDARY}]){re.escape(keyword)}(?![^{_BOUNDARY}])")


def count_matches(text_lower: str, keywords: tuple[str, ...]) -> tuple[int, list[str]]:
    """Return (total hits, keywords that hit at least once) for lowercased text."""
    total = 0
    matched: list[str] = []
    for keyword in keywords:
        hits = len(_keyword_pattern(keyword.lower()).findall(text_lower))
        if hits:
            total += hits
            matched.append(keyword)
    return total, matched


def _per_thousand(hits: int, word_count: int) -> float:
    return hits / max(word_count / 1000, 1)


def _detect_themes(text_lower: str, word_count: int) -> list[str]:
    scored = []
    for theme, keywords in _THEMES.items():
        hits, _ = count_matches(text_lower, keywords)
        score = _per_thousand(hits, word_count)
        if score > _THEME_MIN_SCORE:
            scored.append((theme, score))
    scored.sort(key=lambda t: t[1], reverse=True)
    return [theme for theme, _ in scored[:_MAX_THEMES]]


def _build_categories(genres: list[GenreSignal], themes: list[str]) -> list[str]:
    categories: list[str] = []
    for signal in genres[:2]:
        categories.append(f"FICTION / {signal.genre}")
        categories.extend(f"FICTION / {signal.genre} / {sub}" for sub in signal.sub_genres[:2])
    categories.extend(category for theme, category in _THEME_CATEGORIES if theme in themes)
    return list(dict.fromkeys(categories))[:_MAX_CATEGORIES]


def analyze_text(manuscript_id: int, title: str, text: str) -> GenreAnalysis:
    """Score every genre profile against one manuscript's prose."""
    text_lower = text.lower()
    word_count = len(text_lower.split())

    signals: list[GenreSignal] = []
    for profile in _PROFILES:
        hits, matched = count_matches(text_lower, profile.keywords)
        score = _per_thousand(hits, word_count)
        if score <= _GENRE_MIN_SCORE:
            continue

        subs = []
        for name, keywords in profile.sub_genres:
            sub_hits, _ = count_matches(text_lower, keywords)
            sub_score = _per_thousand(sub_hits, word_count)
            if sub_score > _SUB_GENRE_MIN_SCORE:
                subs.append((name, sub_score))
        subs.sort(key=lambda s: s[1], reverse=True)

        signals.append(GenreSignal(
            genre=profile.genre,
            sub_genres=[name for name, _ in subs],
            confidence=round(min(1.0, score / _FULL_CONFIDENCE_SCORE), 2),
            markers=matched[:_MAX_MARKERS],
        ))

    signals.sort(key=lambda s: s.confidence, reverse=True)
    themes = _detect_themes(text_lower, word_count)
    return GenreAnalysis(
        manuscript_id=manuscript_id,
        manuscript_title=title,
        primary_genre=signals[0].genre if signals else FALLBACK_GENRE,
        genres=signals,
        word_count=word_count,
        suggested_categories=_build_categories(signals, themes),
        themes=themes,
    )


async def analyze_genre(manuscript_id: int) -> GenreAnalysis:
    """Genre analysis of one manuscript. Raises NotFoundError for an unknown id."""
    manuscript = await manuscript_store.get_manuscript(manuscript_id)
    chapters = await manuscript_store.list_chapters(manuscript_id)
    text = "\n\n".join(c.body for c in chapters)
    return analyze_text(manuscript.id, manuscript.title, text)


def _consistency_note(series_genre: str, primaries: list[str]) -> str:
    distinct = list(dict.fromkeys(primaries))
    if len(distinct) <= 1:
        return f"All books are consistently {series_genre}."
    if len(distinct) == 2:
        return f"The series blends {' and '.join(distinct)}."
    return (
        f"The series spans multiple genres: {', '.join(distinct)}. "
        "Consider whether this is intentional for marketing purposes."
    )


async def analyze_project_genre(project_id: int) -> ProjectGenreAnalysis:
    """Analyze every manuscript and aggregate a series genre and recurring themes."""
    await project_store.get_project(project_id)
    analyses = [
        await analyze_genre(m.id)
        for m in await manuscript_store.list_manuscripts(project_id)
    ]

    genre_weight: Counter[str] = Counter()
    theme_books: Counter[str] = Counter()
    for analysis in analyses:
        for signal in analysis.genres:
            genre_weight[signal.genre] += signal.confidence
        theme_books.update(analysis.themes)

    series_genre = genre_weight.most_common(1)[0][0] if genre_weight else FALLBACK_GENRE
    min_books = max(2, len(analyses) * 0.5)
    recurring = [theme for theme, n in theme_books.most_common() if n >= min_books]

    return ProjectGenreAnalysis(
        project_id=project_id,
        manuscripts=analyses,
        series_genre=series_genre,
        recurring_themes=recurring,
        genre_consistency=_consistency_note(series_genre, [a.primary_genre for a in analyses]),
    )


async def detect_primary_genre(project_id: int, manuscript_id: int | None = None) -> str:
    """Genre label for the remote classifier prompt: one book's, or the series'."""
    if manuscript_id is not None:
        genre = (await analyze_genre(manuscript_id)).primary_genre
    else:
        genre = (await analyze_project_genre(project_id)).series_genre
    logger.info("Project %s: detected genre %s", project_id, genre)
    return genre
