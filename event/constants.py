class EventMode:
    ONLINE = "online"
    OFFLINE = "offline"
    HYBRID = "hybrid"

    @classmethod
    def values(cls) -> list[str]:
        return [cls.ONLINE, cls.OFFLINE, cls.HYBRID]


TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
OVERVIEW_MAX_LENGTH = 500

TRIMMED_FIELDS = (
    "title",
    "description",
    "overview",
    "image",
    "venue",
    "location",
    "audience",
    "organizer",
)

EVENTS_COLLECTION = "events"
