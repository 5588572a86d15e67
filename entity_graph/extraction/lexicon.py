"""Gazetteer, tag taxonomy and word lists used by extraction."""

from dataclasses import dataclass, field
from typing import Optional

from entity_graph.models import EntityType

Place = EntityType.PLACE
Activity = EntityType.ACTIVITY
Cultural = EntityType.CULTURAL
Food = EntityType.FOOD
Transport = EntityType.TRANSPORT
Organization = EntityType.ORGANIZATION
Event = EntityType.EVENT


@dataclass(frozen=True)
class LexiconEntry:
    """A known entity term.

    ``pattern`` entries are regular expressions; the matched text becomes the
    entity name. Plain entries match ``name`` or any alias as whole words and
    always report ``name``.
    """

    name: str
    type: EntityType
    confidence: float
    category: Optional[str] = None
    aliases: tuple[str, ...] = field(default_factory=tuple)
    pattern: Optional[str] = None

    @property
    def terms(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


def _entries(
    entity_type: EntityType,
    confidence: float,
    category: str,
    *names: str | tuple[str, ...],
) -> list[LexiconEntry]:
    entries = []
    for item in names:
        if isinstance(item, tuple):
            name, *aliases = item
        else:
            name, aliases = item, []
        entries.append(LexiconEntry(name, entity_type, confidence, category, tuple(aliases)))
    return entries


GAZETTEER: list[LexiconEntry] = [
    # Countries
    *_entries(
        Place, 0.95, "Country",
        ("Thailand", "Thai"),
        ("Colombia", "Colombian"),
        ("Vietnam", "Vietnamese"),
        ("Indonesia", "Indonesian"),
        ("India", "Indian"),
        ("Nepal", "Nepalese", "Nepali"),
        ("Japan", "Japanese"),
        ("Cambodia", "Cambodian"),
        ("Laos",),
        ("Malaysia", "Malaysian"),
        ("Philippines", "Filipino"),
        ("Sri Lanka", "Sri Lankan"),
        ("Peru", "Peruvian"),
        ("Mexico", "Mexican"),
    ),
    # Cities
    *_entries(
        Place, 0.95, "City",
        "Bangkok", "Chiang Mai", "Phuket", "Krabi", "Bogota", ("Medellin", "Medellín"),
        "Cartagena", ("Ho Chi Minh City", "Ho Chi Minh", "Saigon"), "Hanoi", "Da Nang",
        "Hoi An", "Jakarta", "Yogyakarta", ("Delhi", "New Delhi"), "Mumbai", "Kathmandu",
        "Pokhara", "Tokyo", "Kyoto", "Osaka", "Nara", "Hiroshima", "Siem Reap",
        "Luang Prabang", "Kuala Lumpur", "Manila", "Lima", ("Cusco", "Cuzco"),
    ),
    *_entries(Place, 0.9, "District", "Shibuya", "Shinjuku", "Asakusa", "Gion", "Ubud", "Khao San Road"),
    *_entries(Place, 0.95, "Island", "Bali", "Lombok", "Koh Phangan", "Koh Tao", "Koh Samui", "Palawan"),
    *_entries(Place, 0.95, "State", "Goa", "Kerala", "Rajasthan"),
    *_entries(Place, 0.95, "Mountain", ("Everest", "Mount Everest"), ("Mount Fuji", "Fuji"), "Annapurna"),
    *_entries(Place, 0.9, "Landmark", "Angkor Wat", "Taj Mahal", "Machu Picchu", "Halong Bay", "Borobudur"),
    # Activities
    *_entries(
        Activity, 0.9, "Adventure",
        "trekking", "hiking", "rock climbing", "mountain climbing", "kayaking", "canyoning",
    ),
    *_entries(Activity, 0.9, "Water Sports", "snorkeling", ("scuba diving", "diving"), "surfing"),
    *_entries(Activity, 0.85, "Cultural", "temple hopping"),
    *_entries(Activity, 0.9, "Food", "street food"),
    *_entries(Activity, 0.85, "Food", "cooking class"),
    *_entries(Activity, 0.8, "Wellness", "massage", "yoga", "meditation"),
    # Culture
    *_entries(Cultural, 0.9, "Religion", "buddhist temple", "hindu temple", "shinto shrine"),
    *_entries(Cultural, 0.8, "Event", "festival", "ceremony"),
    *_entries(Cultural, 0.9, "Heritage", "heritage site"),
    *_entries(Cultural, 0.95, "UNESCO", "world heritage"),
    LexiconEntry("wat", Cultural, 0.85, "Temple", pattern=r"\bwat\s+[a-z]+\b"),
    LexiconEntry("traditional", Cultural, 0.8, "Tradition", pattern=r"\btraditional\s+[a-z]{3,}\b"),
    # Food
    *_entries(
        Food, 0.95, "Thai Cuisine",
        "pad thai", "tom yum", "green curry", "massaman", "som tam", "mango sticky rice",
    ),
    *_entries(Food, 0.95, "Colombian Cuisine", "arepas", "bandeja paisa"),
    *_entries(Food, 0.9, "Latin Cuisine", "empanadas", "ceviche"),
    *_entries(Food, 0.95, "Vietnamese Cuisine", "pho", "banh mi", "bun cha"),
    *_entries(Food, 0.95, "Indonesian Cuisine", "nasi goreng", "rendang", "gado gado"),
    *_entries(Food, 0.9, "Japanese Cuisine", "ramen", "sushi", "okonomiyaki", "takoyaki"),
    *_entries(Food, 0.9, "Indian Cuisine", "biryani", "dal", "masala dosa"),
    *_entries(Food, 0.9, "Nepali Cuisine", "momo"),
    *_entries(Food, 0.8, "Asian Cuisine", "curry"),
    # Transport
    *_entries(Transport, 0.95, "Local Transport", "tuk tuk", "songthaew"),
    *_entries(Transport, 0.85, "Local Transport", "motorbike taxi"),
    *_entries(Transport, 0.8, "Vehicle", "scooter"),
    *_entries(Transport, 0.9, "Water Transport", "longtail boat"),
    *_entries(Transport, 0.8, "Water Transport", "ferry"),
    *_entries(Transport, 0.85, "Long Distance", "overnight bus", "sleeper train", ("bullet train", "shinkansen")),
    *_entries(Transport, 0.8, "Air Travel", "budget airline"),
    # Organizations
    *_entries(Organization, 0.8, "Accommodation", "hostel", "guesthouse", "resort", "ryokan"),
    *_entries(Organization, 0.85, "Service", "travel agency", "tour operator"),
    *_entries(Organization, 0.9, "Protected Area", "national park", "wildlife sanctuary"),
]

# Tag keyword -> entity type, checked when a tag is not a gazetteer term
TAG_TAXONOMY: dict[str, EntityType] = {
    "food": Food,
    "cuisine": Food,
    "eat": Food,
    "restaurant": Food,
    "hike": Activity,
    "trek": Activity,
    "dive": Activity,
    "adventure": Activity,
    "beach": Place,
    "island": Place,
    "city": Place,
    "mountain": Place,
    "country": Place,
    "temple": Cultural,
    "culture": Cultural,
    "history": Cultural,
    "festival": Event,
    "event": Event,
    "transport": Transport,
    "train": Transport,
    "bus": Transport,
    "flight": Transport,
    "hotel": Organization,
    "hostel": Organization,
    "accommodation": Organization,
}

POSITIVE_WORDS = frozenset(
    {
        "amazing", "beautiful", "incredible", "fantastic", "wonderful", "great",
        "excellent", "perfect", "stunning", "delicious", "friendly", "love",
        "loved", "best", "breathtaking", "famous", "favorite", "magical",
    }
)

NEGATIVE_WORDS = frozenset(
    {
        "terrible", "awful", "horrible", "disappointing", "bad", "worst", "hate",
        "dirty", "dangerous", "overpriced", "scam", "crowded", "rude", "boring",
    }
)

# Words near an unknown proper noun that hint at its type
CONTEXT_CUES: dict[EntityType, frozenset[str]] = {
    EntityType.PLACE: frozenset(
        {
            "in", "to", "at", "near", "visited", "visit", "visiting", "city", "town",
            "village", "district", "island", "province", "beach", "arrived", "explore",
            "explored",
        }
    ),
    EntityType.PERSON: frozenset(
        {"mr", "mrs", "ms", "dr", "met", "said", "told", "guide", "host", "owner", "friend"}
    ),
    EntityType.ORGANIZATION: frozenset(
        {
            "hotel", "hostel", "company", "airline", "restaurant", "cafe", "agency",
            "museum", "university", "bar", "stayed",
        }
    ),
    EntityType.EVENT: frozenset({"festival", "celebration", "parade", "fair", "carnival", "during"}),
}

# Capitalized words that never start an entity on their own
STOPWORDS = frozenset(
    {
        "a", "an", "the", "this", "that", "these", "those", "i", "we", "you", "he",
        "she", "it", "they", "my", "our", "your", "his", "her", "their", "its",
        "and", "or", "but", "so", "if", "when", "while", "after", "before", "then",
        "there", "here", "what", "which", "who", "where", "why", "how", "in", "on",
        "at", "to", "from", "for", "of", "with", "by", "as", "is", "was", "are",
        "were", "be", "been", "do", "did", "have", "has", "had", "not", "no", "yes",
        "also", "just", "some", "many", "most", "all", "every", "each", "one",
        "first", "last", "next", "day", "days", "today", "tomorrow", "yesterday",
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
        "january", "february", "march", "april", "may", "june", "july", "august",
        "september", "october", "november", "december", "however", "although",
        "because", "let", "lets", "let's", "don't", "i'm", "it's", "tip", "note",
        "later", "finally", "afterwards", "meanwhile", "overall", "now", "still",
    }
)
