from dataclasses import dataclass, asdict


@dataclass(slots=True)
class BaseView:
    """Base class for view response objects."""

    def to_dict(self) -> dict:
        return asdict(self)
