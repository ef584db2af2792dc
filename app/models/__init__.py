from app.models.base import Base
from app.models.engagement import Like, Scrap
from app.models.friend import FriendEdge
from app.models.study import TodayStudy
from app.models.transcription import CopyItem, Transcription
from app.models.user import User
from app.models.vocabulary import Vocabulary, VocabularyLike
from app.models.writing import Prompt, Writing

__all__ = [
    "Base",
    "User",
    "FriendEdge",
    "Like",
    "Scrap",
    "TodayStudy",
    "Prompt",
    "Writing",
    "CopyItem",
    "Transcription",
    "Vocabulary",
    "VocabularyLike",
]
