# frontend/chat.py
from dataclasses import dataclass
from typing import Dict, List

# Import modules (not bare functions) so monkeypatching in tests works correctly
import backend.processors.gateway as _gateway
from backend import monitoring
from backend.llm_wrapper import LLMConfigError
from backend.schemas import ChatMessageRecord


@dataclass
class ChatTurn:
    id: str
    role: str      # "user" or "model"
    content: str


class ChatPanel:
    """
    Follow-up Q&A about one BRD.

    Every send replays the whole in-memory conversation to the model; there is
    no truncation, so context grows with the conversation.
    """

    def __init__(self, api, brd_id: str, brd_content: str, language: str = "en"):
        self.api = api
        self.brd_id = brd_id
        self.brd_content = brd_content
        self.language = language
        self.messages: List[ChatTurn] = []
        self.is_loading = False

    def load(self) -> List[ChatTurn]:
        try:
            rows = self.api.list_chat(self.brd_id)
        except Exception:
            monitoring.logger.exception("Failed to fetch messages", extra={"brd_id": self.brd_id})
            return self.messages
        records = [ChatMessageRecord.model_validate(r) for r in rows]
        self.messages = [ChatTurn(id=r.id, role=r.role, content=r.content) for r in records]
        return self.messages

    def history(self) -> List[Dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.messages]

    def send(self, text: str) -> bool:
        """
        Store the user turn, ask the model with the prior turns as context,
        store and show the reply. Returns True when a reply was added.
        """
        message = (text or "").strip()
        if not message or self.is_loading:
            return False

        self.is_loading = True
        try:
            user_id = self.api.append_chat(self.brd_id, "user", message)
            prior = self.history()
            self.messages.append(ChatTurn(id=user_id, role="user", content=message))

            result = _gateway.chat_reply(self.brd_content, prior, message, self.language)
            if result.failed:
                return False

            model_id = self.api.append_chat(self.brd_id, "model", result.text)
            self.messages.append(ChatTurn(id=model_id, role="model", content=result.text))
            return True
        except LLMConfigError:
            raise
        except Exception:
            monitoring.logger.exception("Chat error", extra={"brd_id": self.brd_id})
            return False
        finally:
            self.is_loading = False
