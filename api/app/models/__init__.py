from .base import Base
from .tag import Tag, TopicTag
from .tag_collect import TagCollect
from .topic import Topic
from .user import User

__all__ = [
    "Base",
    "Tag",
    "TopicTag",
    "TagCollect",
    "Topic",
    "User",
]
