"""Messaging routes."""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from pydantic import BaseModel

from app.core.security import get_current_user
from app.db.repository import Repository
from app.db.sessions import get_db
from app.models.message import Message
from app.models.user import User
from app.routes.users import UserResponse
from app.services.messaging_service import MessagingService


router = APIRouter(prefix="/api/messages", tags=["Messages"])


class SendMessageRequest(BaseModel):
    receiverId: str
    content: str


class MarkReadRequest(BaseModel):
    senderId: str


class MessageResponse(BaseModel):
    id: str
    senderId: str
    receiverId: str
    content: str
    timestamp: str
    read: bool

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            senderId=message.sender_id,
            receiverId=message.receiver_id,
            content=message.content,
            timestamp=message.timestamp.isoformat(),
            read=message.read,
        )


class ConversationResponse(BaseModel):
    otherUser: UserResponse
    lastMessage: MessageResponse
    unreadCount: int


class UnreadCountResponse(BaseModel):
    unreadCount: int


class MarkReadResponse(BaseModel):
    updated: int


@router.post("/send", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def send_message(body: SendMessageRequest, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    message = MessagingService(Repository(db)).send_message(current_user.id, body.receiverId, body.content)
    return MessageResponse.from_message(message)


@router.get("/conversations", response_model=List[ConversationResponse])
def get_conversations(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [
        ConversationResponse(
            otherUser=UserResponse.from_user(c["otherUser"]),
            lastMessage=MessageResponse.from_message(c["lastMessage"]),
            unreadCount=c["unreadCount"],
        )
        for c in MessagingService(Repository(db)).conversations(current_user.id)
    ]


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return UnreadCountResponse(unreadCount=MessagingService(Repository(db)).unread_count(current_user.id))


@router.post("/mark-as-read", response_model=MarkReadResponse)
def mark_as_read(body: MarkReadRequest, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return MarkReadResponse(updated=MessagingService(Repository(db)).mark_as_read(current_user.id, body.senderId))


@router.get("/{user_id}", response_model=List[MessageResponse])
def get_conversation(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Messages exchanged with `user_id`, oldest first."""
    messages = MessagingService(Repository(db)).conversation(current_user.id, user_id)
    return [MessageResponse.from_message(m) for m in messages]
