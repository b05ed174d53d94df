import time
from dataclasses import dataclass


@dataclass
class Post:
    author_id: int
    contents: str
    timestamp: int
    id: int = 0

    @classmethod
    def new(cls, author, contents):
        """Build a post by ``author`` stamped with the current time (whole seconds)."""
        return cls(author_id=author.id, contents=contents, timestamp=int(time.time()))
