"""Direct messaging between users."""
import logging
from typing import Dict, List

from app.core.exceptions import UserNotFound, ValidationFailed
from app.db.repository import Repository
from app.models.message import Message

logger = logging.getLogger(__name__)


class MessagingService:
    def __init__(self, repo: Repository):
        self.repo = repo

    def send_message(self, sender_id: str, receiver_id: str, content: str) -> Message:
        if not isinstance(content, str) or not content.strip():
            raise ValidationFailed("Message content is required")
        if sender_id == receiver_id:
            raise ValidationFailed("You cannot message yourself")
        if self.repo.find_user_by_id(receiver_id) is None:
            raise UserNotFound("Recipient not found")

        message = self.repo.insert_message(Message(
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content.strip(),
        ))
        self.repo.commit()
        return message

    def conversation(self, user_id: str, other_id: str) -> List[Message]:
        return self.repo.find_conversation(user_id, other_id)

    def conversations(self, user_id: str) -> List[Dict]:
        """One entry per counterpart: last message and unread count, newest first."""
        summaries = {}
        for message in self.repo.find_messages_for_user(user_id):
            other_id = message.receiver_id if message.sender_id == user_id else message.sender_id
            entry = summaries.setdefault(other_id, {"lastMessage": message, "unreadCount": 0})
            if message.receiver_id == user_id and not message.read:
                entry["unreadCount"] += 1

        results = []
        for other_id, entry in summaries.items():
            other = self.repo.find_user_by_id(other_id)
            if other is None:
                continue
            results.append({"otherUser": other, **entry})
        return results

    def unread_count(self, user_id: str) -> int:
        return self.repo.count_unread(user_id)

    def mark_as_read(self, user_id: str, sender_id: str) -> int:
        updated = self.repo.mark_read(receiver_id=user_id, sender_id=sender_id)
        self.repo.commit()
        logger.info("Marked %d messages from %s as read for %s", updated, sender_id, user_id)
        return updated
