"""
Retrieval-augmented chat orchestrator.

Turns a user message into a persisted conversation, a context-augmented prompt
and a generated reply:

1. Resolve (or mint) the session
2. Record the user turn before any external call
3. Embed the message, search the service index, hydrate catalog records
4. Assemble the system prompt plus the full transcript
5. Complete with the requested/active model, retrying once on the default model
6. Record the assistant turn and return the reply

Retrieval is an enhancement only: any failure in step 3 continues with no
context. Completion failures end in a fixed apologetic reply, never an error.
"""

import asyncio
import functools
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple

from ..core import config
from ..core.catalog import CatalogStore
from ..core.errors import DependencyError, StoreError, ValidationError
from ..core.prompt import build_messages
from ..core.schema import CatalogRecord, ConversationTurn, Session
from ..core.sessions import SessionStore
from ..core.settings_store import SettingsStore
from ..util.logging import logger
from .completion import GenerationParams, ICompletionProvider


@dataclass
class ChatResult:
    """Outcome of one handled message."""
    session_id: str
    reply: str
    is_new_session: bool
    model_used: str
    sources: List[str] = field(default_factory=list)
    fallback: bool = False


class RetrievalOrchestrator:
    """
    Coordinates session store, embedding provider, vector index, catalog and
    completion provider for each incoming message.

    Holds no per-request state; every call to handle_message is independent.
    """

    def __init__(self,
                 session_store: Optional[SessionStore] = None,
                 catalog: Optional[CatalogStore] = None,
                 settings: Optional[SettingsStore] = None,
                 vector_store=None,
                 embedding_provider=None,
                 completion_provider: Optional[ICompletionProvider] = None,
                 top_k: Optional[int] = None,
                 params: Optional[GenerationParams] = None):
        self.sessions = session_store or SessionStore()
        self.catalog = catalog or CatalogStore()
        self.settings = settings or SettingsStore()

        # Providers left as None are resolved lazily from config, inside the
        # guarded call, so a provider that fails to load only degrades retrieval
        self._vector_store = vector_store
        self._embedding_provider = embedding_provider
        self._completion_provider = completion_provider

        self.top_k = top_k or config.RETRIEVAL_TOP_K
        self.params = params or config.get_generation_params()
        self.embed_timeout = config.EMBED_TIMEOUT_SEC
        self.vector_timeout = config.VECTOR_TIMEOUT_SEC
        self.completion_timeout = config.COMPLETION_TIMEOUT_SEC

    @property
    def vector_store(self):
        return self._vector_store or config.get_vector_store()

    @property
    def embedding_provider(self):
        return self._embedding_provider or config.get_embedding_provider()

    @property
    def completion_provider(self) -> ICompletionProvider:
        return self._completion_provider or config.get_completion_provider()

    async def handle_message(self, text: str, session_id: Optional[str] = None,
                             model: Optional[str] = None) -> ChatResult:
        """
        Process one user message end to end.

        Args:
            text: The user's message; must not be blank
            session_id: Existing session to continue, if any
            model: Per-call model override

        Returns:
            ChatResult with the (possibly new) session id and the reply

        Raises:
            ValidationError: when the message is missing or blank
        """
        if not text or not text.strip():
            raise ValidationError("Message is required", field="message")

        # Retrieval has no ordering dependency on the session read
        retrieval = asyncio.create_task(self._retrieve(text))
        try:
            session, is_new = await asyncio.to_thread(self._resolve_session, session_id)

            user_turn = ConversationTurn(role="user", content=text, timestamp=datetime.now())
            session.turns.append(user_turn)
            await self._persist(session.id, user_turn)

            records = await retrieval
        finally:
            if not retrieval.done():
                retrieval.cancel()

        messages = build_messages(records, session.turns)
        reply, model_used, fallback = await self._complete(messages, model)

        assistant_turn = ConversationTurn(role="assistant", content=reply, timestamp=datetime.now())
        session.turns.append(assistant_turn)
        await self._persist(session.id, assistant_turn)

        return ChatResult(
            session_id=session.id,
            reply=reply,
            is_new_session=is_new,
            model_used=model_used,
            sources=[r.name for r in records],
            fallback=fallback
        )

    def _resolve_session(self, session_id: Optional[str]) -> Tuple[Session, bool]:
        if session_id and session_id.strip():
            try:
                existing = self.sessions.get(session_id)
            except StoreError as e:
                # Keep the caller's id rather than forking the conversation
                logger.log_dependency_failure("session_store", e, action="degraded")
                return Session(id=session_id), False
            if existing:
                return existing, False

        return Session(id=self._new_session_id()), True

    def _new_session_id(self) -> str:
        new_id = str(uuid.uuid4())
        try:
            while self.sessions.exists(new_id):
                new_id = str(uuid.uuid4())
        except StoreError as e:
            logger.log_dependency_failure("session_store", e, action="degraded")
        return new_id

    async def _persist(self, session_id: str, turn: ConversationTurn) -> None:
        """Best-effort durable append; the in-memory transcript is kept either way."""
        try:
            await asyncio.to_thread(self.sessions.append, session_id, turn)
        except StoreError as e:
            logger.log_dependency_failure("session_store", e, action="degraded")

    async def _call(self, fn: Callable[[], Any], timeout: float, dependency: str) -> Any:
        """Run a blocking provider call in a worker thread, bounded by `timeout`."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), timeout)
        except asyncio.TimeoutError as e:
            raise DependencyError(f"{dependency} timed out after {timeout}s", dependency=dependency) from e
        except DependencyError:
            raise
        except Exception as e:
            raise DependencyError(f"{dependency} call failed: {e}", dependency=dependency) from e

    async def _retrieve(self, text: str) -> List[CatalogRecord]:
        """Embed, search and hydrate. Never raises; failures yield no context."""
        try:
            vector = await self._call(
                lambda: self.embedding_provider.embed_text(text), self.embed_timeout, "embedding"
            )
        except DependencyError as e:
            logger.log_dependency_failure("embedding", e)
            return []

        try:
            matches = await self._call(
                lambda: self.vector_store.search(vector, self.top_k), self.vector_timeout, "vector_index"
            )
        except DependencyError as e:
            logger.log_dependency_failure("vector_index", e)
            return []

        if not matches:
            logger.log_retrieval(text, self.top_k, 0, 0)
            return []

        try:
            records = await asyncio.to_thread(self.catalog.get_services, [m.id for m in matches])
        except DependencyError as e:
            logger.log_dependency_failure("catalog", e)
            return []

        logger.log_retrieval(text, self.top_k, len(matches), len(records))
        return records

    async def _complete(self, messages, model: Optional[str]) -> Tuple[str, str, bool]:
        """Returns (reply, model_used, fallback)."""
        if model and model.strip():
            requested = model.strip()
        else:
            requested = await asyncio.to_thread(self.settings.get_active_model)
        candidates = [requested]
        if requested != config.DEFAULT_MODEL:
            candidates.append(config.DEFAULT_MODEL)

        for attempt, candidate in enumerate(candidates):
            try:
                reply = await self._call(
                    functools.partial(self._generate, candidate, messages),
                    self.completion_timeout,
                    "completion"
                )
                if not reply or not reply.strip():
                    raise DependencyError("Completion returned an empty reply", dependency="completion",
                                          details={"model": candidate})
                return reply, candidate, False
            except DependencyError as e:
                last_attempt = attempt == len(candidates) - 1
                logger.log_dependency_failure("completion", e, action="fallback" if last_attempt else "retry")

        return config.FALLBACK_REPLY, requested, True

    def _generate(self, model: str, messages) -> str:
        return self.completion_provider.complete(model, messages, self.params)

    def available_models(self) -> List[str]:
        """Models reported by the completion provider, else the configured list."""
        try:
            models = self.completion_provider.list_models()
        except DependencyError as e:
            logger.log_dependency_failure("completion", e, action="fallback")
            models = []
        return models or list(config.AVAILABLE_MODELS)
