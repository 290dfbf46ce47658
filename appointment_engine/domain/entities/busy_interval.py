from dataclasses import dataclass


@dataclass(frozen=True)
class BusyInterval:
    start_minutes: int
    end_minutes: int

    def overlaps(self, start: int, end: int) -> bool:
        # Open intervals: touching endpoints do not overlap.
        return start < self.end_minutes and end > self.start_minutes
