"""Static gazetteer: known names, noise words and context signal vocabularies.

The tables are plain module constants; ``get_gazetteer()`` freezes them once
into an immutable ``Gazetteer`` that classifiers and scanners consult
read-only. Tests can build their own ``Gazetteer`` (e.g. an empty one) and
pass it explicitly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, NamedTuple

from novelmap.models.entity import EntityType

# ---------------------------------------------------------------------------
# Noise words: commonly capitalized at sentence starts, never entity names
# ---------------------------------------------------------------------------
_NOISE_WORDS: set[str] = {
    # Short function words
    "an", "am", "as", "at", "be", "by", "do", "go", "he", "if", "in",
    "is", "it", "me", "my", "no", "of", "on", "or", "so", "to", "up", "us", "we",
    # Common function words
    "the", "and", "but", "for", "not", "you", "all", "can", "had", "her",
    "was", "one", "our", "out", "get", "has", "him", "his",
    "how", "its", "may", "new", "now", "old", "see", "way", "who", "did",
    "got", "let", "say", "she", "too", "use", "when", "then", "than",
    "them", "they", "this", "that", "with", "have", "from", "been", "some",
    "what", "were", "will", "each", "make", "like", "long", "look", "many",
    "come", "could", "more", "would", "about", "after", "again", "being",
    "before", "between", "both", "came", "every", "first", "just", "know",
    "last", "little", "made", "much", "must", "never", "next", "only",
    "other", "over", "same", "should", "still", "such", "take", "their",
    "these", "think", "those", "time", "under", "very", "well",
    "where", "while", "years", "young", "another", "because", "nothing",
    "something", "through", "without", "right", "going", "back",
    "here", "there", "also", "most", "need", "even", "into", "good",
    "keep", "down", "want", "away", "part", "hand", "high",
    "room", "left", "head", "door", "side", "life", "eyes", "face",
    "thing", "enough", "any", "few", "several", "whose", "whom",
    "whether", "either", "neither", "nor", "yet", "yes",
    # Verbs
    "turned", "looked", "moved", "walked", "stood", "stopped", "called",
    "watched", "started", "seemed", "continued", "reached", "pulled",
    "held", "opened", "closed", "tried", "wanted", "needed", "became",
    "began", "decided", "learned", "remembered", "realized", "understood",
    "heard", "felt", "found", "gave", "told", "took", "went", "done",
    "seen", "known", "sent", "caught", "kept", "meant", "lost", "paid",
    "said", "spoke", "replied", "answered", "explained", "added",
    "figured", "supposed", "noticed", "recognized", "considered",
    "grabbed", "dropped", "stepped", "leaned", "pressed", "pushed",
    "glanced", "stared", "nodded", "shook", "shrugged", "sighed",
    "whispered", "muttered", "shouted", "screamed", "laughed", "smiled",
    "pointed", "waved", "waited", "paused", "hesitated", "agreed",
    "followed", "returned", "arrived", "entered", "approached", "crossed",
    "drove", "running", "sitting", "standing", "waiting", "coming",
    "leaving", "talking", "working", "thinking", "looking", "getting",
    "making", "taking", "trying", "playing", "reading", "writing",
    "knowing", "seeing", "hearing", "feeling", "falling", "pulling",
    "everything", "everybody", "everyone", "anything", "anyone", "somewhere", "someone",
    # Adjectives
    "better", "best", "worse", "worst", "less", "least", "greater",
    "local", "national", "federal", "official", "special",
    "major", "minor", "public", "private", "modern", "current", "recent",
    "different", "various", "certain", "possible", "likely", "clear",
    "open", "close", "full", "empty", "dark", "light", "hard", "soft",
    "large", "small", "fast", "slow", "early", "late", "sure", "real",
    "whole", "entire", "single", "double", "multiple", "simple", "complex",
    "main", "total", "direct", "social", "human", "foreign", "free",
    "true", "false", "wrong", "fine", "fair", "safe", "worth",
    "ready", "quick", "quiet", "alone", "alive", "dead", "strong", "weak",
    "clean", "dry", "wet", "hot", "cold", "cool", "warm", "bright", "deep",
    "thick", "thin", "heavy", "flat", "sharp", "rough", "smooth", "tight",
    "cheap", "rich", "poor", "fresh", "strange", "familiar", "ordinary",
    "obvious", "serious", "nervous", "angry", "glad", "sorry", "afraid",
    # Nouns that are not names
    "people", "place", "world", "house", "point", "asked",
    "almost", "around", "really", "thought", "night", "work",
    "day", "man", "woman", "girl", "boy", "child", "children",
    "person", "group", "team", "family", "friend", "friends",
    "secretary", "president", "minister", "director", "doctor", "dr",
    "professor", "officer", "agent", "captain", "colonel", "lieutenant",
    "general", "commander", "chief", "deputy", "assistant", "senior", "junior",
    "sir", "madam", "lady", "lord", "king", "queen", "prince", "princess",
    "brother", "sister", "father", "mother", "daughter", "son", "uncle", "aunt",
    "husband", "wife", "partner", "boss", "guard", "soldier", "pilot",
    "driver", "nurse", "lawyer", "judge", "mayor", "governor", "senator",
    "marshal", "detective", "inspector", "analyst", "advisor", "spokesman",
    "protocol", "research", "science", "technology", "system", "program",
    "project", "report", "record", "document", "file", "data", "process",
    "service", "network", "security", "intelligence", "defense", "policy",
    "meeting", "mission", "operation", "session", "conference", "management",
    "recognition", "detention", "investigation", "headquarters", "facility",
    "mineral", "material", "evidence", "surveillance", "assessment",
    "morning", "afternoon", "evening", "midnight", "noon", "dawn", "dusk",
    "moment", "minute", "hour", "week", "month", "year", "decade", "century",
    "today", "tomorrow", "yesterday", "tonight", "weekend",
    "north", "south", "east", "west", "northern", "southern",
    "eastern", "western", "central", "upper", "lower",
    "street", "road", "avenue", "building", "floor", "office", "center",
    "field", "station", "airport", "hotel", "school", "church",
    "water", "fire", "air", "earth", "wind", "rain", "snow",
    "black", "white", "red", "blue", "green", "gray", "brown",
    "money", "power", "truth", "silence", "blood", "death", "peace",
    "war", "law", "order", "love", "fear", "hope", "pain",
    "half", "rest", "end", "top", "bottom", "front", "rear",
    "beginning", "middle", "inside", "outside", "behind", "above",
    "below", "across", "beside", "beyond", "toward", "towards",
    "city", "town", "country", "state", "island", "river", "lake",
    "mountain", "valley", "coast", "border", "region", "district",
    "phone", "screen", "camera", "window", "wall", "table",
    "chair", "bed", "car", "truck", "van", "bus", "train", "plane", "ship",
    "computer", "laptop", "signal", "message", "email", "voice", "sound",
    "question", "answer", "problem", "reason", "idea", "plan", "story",
    "news", "press", "media", "paper", "letter", "note", "card", "list",
    "case", "test", "source", "target", "subject", "matter", "issue",
    "chance", "risk", "threat", "attack", "damage", "control", "access",
    "level", "rate", "cost", "price", "deal", "trade", "market", "business",
    "company", "industry", "government", "military", "police", "army", "navy",
    "walk", "talk", "run", "call", "move", "turn", "step", "stop", "start",
    "pass", "fall", "rise", "drop", "break", "cut", "hit", "set", "put",
    # Numbers & ordinals
    "zero", "two", "three", "four", "five", "six", "seven", "eight", "nine", "ten",
    "eleven", "twelve", "thirteen", "fourteen", "fifteen", "sixteen", "seventeen",
    "eighteen", "nineteen", "twenty", "thirty", "forty", "fifty", "sixty", "seventy",
    "eighty", "ninety", "hundred", "thousand", "million", "billion", "dozen", "couple",
    "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth", "ninth", "tenth",
    # Interjections, abbreviations, misc
    "emergency", "library", "cabinet", "days", "christmas", "american",
    "yeah", "welcome", "hello", "hey", "okay", "please", "thanks",
    "conditions", "terms", "critical", "plant", "unit", "units", "mom", "dad",
    "sen", "rep", "hon", "dept", "corp", "assoc",
    "which", "kill", "phase", "congress",
    # Nationalities / demonyms
    "english", "chinese", "french", "russian", "german", "japanese", "korean",
    "british", "european", "african", "asian", "arab", "indian", "canadian",
    "mexican", "spanish", "italian", "brazilian", "iranian", "israeli",
    "americans", "russians", "germans",
    # Narrative / chapter words
    "chapter", "book", "section", "prologue", "epilogue",
    "however", "although", "finally", "suddenly", "perhaps",
    "certainly", "fortunately", "unfortunately", "apparently", "obviously",
    "meanwhile", "acknowledged", "alright",
    # Days & months ("may" is already a function word)
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    "january", "february", "march", "april", "june", "july", "august",
    "september", "october", "november", "december",
    # Sentence starters
    "once", "since", "until", "during",
    # Adjectival noise seen in real manuscripts
    "accept", "already", "agricultural", "agriculture", "industrial",
    "presidential", "international", "environmental", "technological",
    "commercial", "professional", "operational", "residential",
    "medical", "political", "financial", "economic", "strategic",
    "tactical", "technical", "structural", "cultural", "physical",
}


def _group(names: list[str], confidence: int) -> dict[str, int]:
    return {name: confidence for name in names}


# ---------------------------------------------------------------------------
# Known locations: name -> confidence
# ---------------------------------------------------------------------------
_LOCATIONS: dict[str, int] = {
    # Major US cities
    **_group([
        "Atlanta", "Austin", "Baltimore", "Boston", "Charlotte", "Chicago",
        "Cincinnati", "Cleveland", "Columbus", "Dallas", "Denver", "Detroit",
        "Houston", "Indianapolis", "Jacksonville", "Louisville",
        "Memphis", "Miami", "Milwaukee", "Minneapolis", "Nashville",
        "Newark", "Norfolk", "Oakland", "Orlando", "Philadelphia", "Phoenix",
        "Pittsburgh", "Portland", "Sacramento", "Seattle", "Tampa",
        "Tucson", "Washington", "Honolulu", "Anchorage", "Reno",
        "Albuquerque", "Omaha", "Buffalo", "Rochester", "Richmond",
        "Savannah", "Charleston", "Lexington", "Boise", "Madison",
        "Fresno", "Bakersfield", "Tulsa", "Wichita", "Arlington",
        "Aurora", "Spokane", "Tacoma", "Durham", "Knoxville",
        "Chattanooga", "Dayton", "Akron", "Providence", "Hartford",
        "Springfield", "Yonkers", "Syracuse", "Worcester", "Flint",
        "Lansing", "Saginaw", "Midland", "Kalamazoo", "Pontiac",
        "Dearborn", "Langley", "Stanford",
    ], 90),
    # Multi-word US cities
    **_group([
        "Grand Rapids", "Fort Meade", "New York", "Los Angeles", "San Francisco",
        "San Diego", "Las Vegas", "San Antonio", "New Orleans", "Salt Lake",
        "Fort Worth", "El Paso", "St. Louis", "Ann Arbor", "Baton Rouge",
        "Kansas City", "Oklahoma City", "Virginia Beach", "Long Beach",
        "Colorado Springs", "Cape Coral", "Fort Lauderdale", "Fort Collins",
        "Little Rock", "Des Moines", "Palm Springs", "Corpus Christi",
        "West Palm Beach", "Santa Fe", "Palo Alto", "Auburn Hills",
    ], 95),
    # World cities
    **_group([
        "Shanghai", "Beijing", "Tokyo", "Seoul", "Mumbai", "Delhi", "Bangkok",
        "Singapore", "Dubai", "Istanbul", "Moscow", "London", "Paris", "Berlin",
        "Rome", "Madrid", "Amsterdam", "Vienna", "Prague", "Warsaw", "Athens",
        "Cairo", "Lagos", "Nairobi", "Johannesburg", "Sydney", "Melbourne",
        "Toronto", "Montreal", "Vancouver", "Taipei", "Kabul", "Baghdad",
        "Damascus", "Beirut", "Riyadh", "Pyongyang", "Havana", "Lima",
        "Bogota", "Caracas", "Santiago", "Helsinki", "Oslo", "Stockholm",
        "Copenhagen", "Brussels", "Lisbon", "Dublin", "Edinburgh",
        "Zurich", "Geneva", "Munich", "Hamburg", "Frankfurt", "Milan",
        "Barcelona", "Osaka", "Kyoto", "Manila", "Jakarta",
    ], 90),
    # Multi-word world cities
    **_group([
        "Hong Kong", "Tel Aviv", "Kuala Lumpur", "Ho Chi Minh",
        "New Delhi", "Addis Ababa", "Buenos Aires", "Rio de Janeiro",
        "Sao Paulo", "Mexico City",
    ], 95),
    # Countries
    **_group([
        "China", "Japan", "Korea", "India", "Russia", "Germany", "France",
        "England", "Britain", "Italy", "Spain", "Brazil", "Mexico", "Canada",
        "Australia", "Egypt", "Israel", "Iran", "Iraq", "Afghanistan",
        "Pakistan", "Vietnam", "Thailand", "Indonesia", "Philippines",
        "Taiwan", "Ukraine", "Poland", "Turkey", "Sweden", "Norway",
        "Finland", "Denmark", "Switzerland", "Austria", "Greece", "Portugal",
        "Colombia", "Argentina", "Chile", "Peru", "Venezuela", "Cuba",
        "Nigeria", "Kenya", "Ethiopia", "Somalia", "Libya", "Syria",
        "Lebanon", "Jordan", "Yemen", "Oman", "Qatar", "Bahrain", "Kuwait",
    ], 85),
    # US states ("Washington" resolves here, below the city entry)
    **_group([
        "California", "Texas", "Florida", "Virginia", "Georgia", "Michigan",
        "Ohio", "Pennsylvania", "Illinois", "Minnesota", "Wisconsin",
        "Colorado", "Arizona", "Oregon", "Montana", "Alaska", "Hawaii",
        "Nevada", "Utah", "Iowa", "Alabama", "Mississippi", "Tennessee",
        "Kentucky", "Carolina", "Connecticut", "Maryland", "Massachusetts",
        "Idaho", "Wyoming", "Nebraska", "Oklahoma", "Arkansas", "Missouri",
        "Indiana", "Louisiana", "Maine", "Vermont", "Delaware",
        "Washington", "New Hampshire",
    ], 80),
    # Regions / continents
    **_group([
        "America", "Europe", "Asia", "Africa", "Pacific", "Atlantic",
        "Arctic", "Antarctic", "Siberia", "Sahara", "Himalayas",
        "Appalachia", "Midwest", "Scandinavia", "Balkans", "Caucasus",
        "Caribbean", "Mediterranean",
    ], 75),
    # Landmarks
    **_group([
        "Pentagon", "Kremlin", "Vatican", "Buckingham",
        "Alcatraz", "Guantanamo", "Chernobyl", "Fukushima",
    ], 85),
    "Camp David": 90,
}

# ---------------------------------------------------------------------------
# Known organizations: name -> confidence
# ---------------------------------------------------------------------------
_ORGANIZATIONS: dict[str, int] = {
    # US government agencies
    **_group([
        "CIA", "FBI", "NSA", "NSC", "DHS", "DOJ", "DOD", "DOE",
        "EPA", "FAA", "FCC", "FDA", "FEMA", "IRS", "SEC", "TSA",
        "ATF", "DEA", "ICE", "CBP", "USDA", "USPS", "NASA", "DARPA",
        "NIST", "NOAA", "NIH", "CDC", "OSHA", "NRC",
    ], 95),
    # Military
    **_group(["NATO", "SOCOM", "JSOC", "CENTCOM", "EUCOM", "PACOM", "SEAL", "SWAT"], 90),
    # International
    **_group(["IAEA", "OPEC", "ASEAN", "BRICS", "INTERPOL", "UNESCO", "UNICEF", "WHO"], 90),
    # Intelligence services
    **_group(["MSS", "FSB", "GRU", "GCHQ", "BND", "DGSE", "ASIS", "CSIS", "RAW"], 90),
    # Technical acronyms that read as organizations in thrillers
    **_group(["SCADA", "EMP", "CERT"], 70),
    # Named bodies
    **_group(["Congress", "Senate", "Parliament", "Politburo", "Pentagon", "Interpol"], 80),
}

# Last word of a multi-word phrase -> location / organization
_LOCATION_SUFFIXES = {
    "plaza", "room", "building", "tower", "bridge", "park", "center", "centre",
    "hall", "base", "compound", "embassy", "station", "hospital", "airport",
    "harbor", "harbour", "port", "dam", "lake", "river", "mountain", "valley",
    "bay", "island", "islands", "peninsula", "falls", "springs", "creek", "ridge",
    "heights", "hills", "woods", "forest", "beach", "coast", "cape", "county",
    "canyon", "mesa", "pass", "crossing", "junction", "point", "terrace",
}
_ORG_SUFFIXES = {
    "festival", "foundation", "corporation", "association", "institute",
    "university", "college", "academy", "agency", "bureau", "department",
    "ministry", "group", "corp", "inc", "ltd", "council", "commission",
    "authority", "alliance", "coalition", "consortium", "syndicate",
    "network", "initiative", "program", "service", "services",
    "committee", "senate", "board", "division",
    "party", "league", "union", "federation", "society", "club",
}
_SUFFIX_CONFIDENCE = 80

# Phrases ending with these are street addresses, too granular to track
_STREET_SUFFIXES = {
    "street", "road", "avenue", "boulevard", "drive", "lane", "court",
    "highway", "way", "route", "freeway", "turnpike", "parkway", "alley",
}

# Shouted dialogue, not acronyms
_CAPS_NOT_ACRONYMS = {
    "HELLO", "READ", "STOP", "HELP", "MOVE", "WAIT",
    "COME", "LOOK", "HERE", "THERE", "WHAT", "WHERE", "WHEN", "FIRE",
    "DOWN", "BACK", "OPEN", "SHUT", "HOLD", "STAY", "KILL", "DEAD",
    "LOVE", "HOME", "GONE", "DAMN", "JUST", "YEAH", "OKAY", "CALL",
    "PLEASE", "SORRY", "NEVER", "LEAVE", "TAKE", "GIVE", "MAKE",
    "TELL", "KNOW", "THINK", "WANT", "NEED", "FEEL",
}

# Short all-caps tokens the scanner never treats as acronyms
_ACRONYM_SKIPS = {
    "OK", "AM", "PM", "TV", "US", "UK", "EU", "UN", "ID", "IT",
    "OR", "AN", "AT", "AS", "IF", "IS", "IN", "ON", "SO", "TO",
    "UP", "NO", "OF", "IV", "IP", "AI", "AD", "DC", "AC", "DO",
    "GO", "ER", "DR", "MR", "MS", "VS", "RE", "EM", "AG",
}

_CHARACTER_TITLES = (
    "mr", "mrs", "ms", "dr", "professor", "colonel", "general", "agent",
    "captain", "lieutenant", "sergeant", "officer", "detective", "inspector",
    "president", "director", "commander", "major", "admiral", "senator",
    "governor", "ambassador", "minister", "secretary", "chief",
)

_CHARACTER_SIGNALS = (
    "said", "asked", "replied", "whispered", "shouted", "yelled",
    "nodded", "shook", "looked", "walked", "ran", "turned", "smiled",
    "frowned", "laughed", "sighed", "thought", "felt", "knew", "wanted",
    "told", "watched", "stood", "sat", "leaned", "paused", "continued",
    "shrugged", "muttered", "snapped", "glanced", "stared", "grabbed",
)

_LOCATION_PREPOSITIONS = (
    "in", "to", "from", "at", "near", "outside", "across", "toward",
    "towards", "through", "around", "beyond",
)

_ORG_NOUNS = (
    "agency", "bureau", "department", "ministry", "institute",
    "corporation", "company", "force", "intelligence", "committee",
)

_ALL_CAPS = re.compile(r"^[A-Z]+$")


class GazetteerHit(NamedTuple):
    type: EntityType
    confidence: int


def _freeze(mapping: Mapping[str, int]) -> Mapping[str, int]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True, eq=False)
class Gazetteer:
    """Read-only lookup tables. Build a custom one for tests; share ``get_gazetteer()`` otherwise."""

    locations: Mapping[str, int] = field(default_factory=lambda: _freeze({}))
    organizations: Mapping[str, int] = field(default_factory=lambda: _freeze({}))
    location_suffixes: frozenset[str] = frozenset()
    org_suffixes: frozenset[str] = frozenset()
    noise_words: frozenset[str] = frozenset()
    street_suffixes: frozenset[str] = frozenset()
    caps_not_acronyms: frozenset[str] = frozenset()
    acronym_skips: frozenset[str] = frozenset()
    character_titles: tuple[str, ...] = ()
    character_signals: tuple[str, ...] = ()
    location_prepositions: tuple[str, ...] = ()
    org_nouns: tuple[str, ...] = ()

    def lookup(self, name: str) -> GazetteerHit | None:
        """Exact-name lookup, then multi-word suffix keywords."""
        conf = self.locations.get(name)
        if conf is not None:
            return GazetteerHit("location", conf)
        conf = self.organizations.get(name)
        if conf is not None:
            return GazetteerHit("organization", conf)

        words = name.split()
        if len(words) >= 2:
            last = words[-1].lower()
            if last in self.location_suffixes:
                return GazetteerHit("location", _SUFFIX_CONFIDENCE)
            if last in self.org_suffixes:
                return GazetteerHit("organization", _SUFFIX_CONFIDENCE)
        return None

    def is_noise(self, name: str) -> bool:
        return name.lower() in self.noise_words

    def is_caps_noise(self, name: str) -> bool:
        """All-caps word that is emphasis rather than an acronym."""
        if name in self.caps_not_acronyms:
            return True
        return (
            len(name) >= 4
            and _ALL_CAPS.match(name) is not None
            and name.lower() in self.noise_words
        )

    def is_street_address(self, name: str) -> bool:
        words = name.split()
        return len(words) >= 2 and words[-1].lower() in self.street_suffixes

    def is_acronym_skip(self, token: str) -> bool:
        return token in self.acronym_skips


def load_gazetteer() -> Gazetteer:
    """Build a Gazetteer from the bundled tables."""
    return Gazetteer(
        locations=_freeze(_LOCATIONS),
        organizations=_freeze(_ORGANIZATIONS),
        location_suffixes=frozenset(_LOCATION_SUFFIXES),
        org_suffixes=frozenset(_ORG_SUFFIXES),
        noise_words=frozenset(_NOISE_WORDS),
        street_suffixes=frozenset(_STREET_SUFFIXES),
        caps_not_acronyms=frozenset(_CAPS_NOT_ACRONYMS),
        acronym_skips=frozenset(_ACRONYM_SKIPS),
        character_titles=_CHARACTER_TITLES,
        character_signals=_CHARACTER_SIGNALS,
        location_prepositions=_LOCATION_PREPOSITIONS,
        org_nouns=_ORG_NOUNS,
    )


@lru_cache(maxsize=1)
def get_gazetteer() -> Gazetteer:
    """Process-wide gazetteer, built on first use."""
    return load_gazetteer()
