from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

DEFAULT = "default"
DESTRUCTIVE = "destructive"


@dataclass
class Notification:
    title: str
    description: Optional[str] = None
    variant: str = DEFAULT

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Notifier:
    """
    Collects non-blocking toast notifications for the UI to drain.
    """

    def __init__(self) -> None:
        self.items: List[Notification] = []

    def notify(self, title: str, description: Optional[str] = None, variant: str = DEFAULT) -> Notification:
        note = Notification(title=title, description=description, variant=variant)
        self.items.append(note)
        return note

    def error(self, title: str, description: Optional[str] = None) -> Notification:
        return self.notify(title, description, variant=DESTRUCTIVE)

    def drain(self) -> List[Notification]:
        items, self.items = self.items, []
        return items
