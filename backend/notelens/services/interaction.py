"""
NoteLens Backend — AI Interaction Controller
==============================================

What:  Stateful wrapper tracking loading/error/result for the last AI
       operation a user started.
How:   Each operation goes through `_run()`:
         1. state ← {loading: True, error: None, result: <unchanged>}
         2. await the adapter call
         3a. success → {loading: False, error: None, result: data}
         3b. failure → {loading: False, error: message, result: <unchanged>},
             then the original exception is re-raised
       The state object is frozen and replaced wholesale on each step.
Who:   The HTTP layer (one controller per signed-in user, via
       InteractionRegistry) and any script that wants a call/await surface.

Concurrency:
    Nothing blocks a second call while one is outstanding. Two overlapping
    calls race on the shared state and the last writer wins; callers are
    expected to keep one operation in flight at a time.
"""

import logging
import time
from typing import Awaitable, Dict, Optional, TypeVar

from notelens.schemas.analysis import (
    EntityResult,
    FaceDetectionResult,
    ImageAnalysisResult,
    ImageFile,
    InteractionState,
    LabelResult,
    ModerationResult,
    SentimentResult,
    SummaryResult,
    TextResult,
    TranslationResult,
)
from notelens.services.language_service import LanguageService
from notelens.services.vision_service import VisionService
from notelens.session import BackendSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AIInteractionController:
    """Single-outstanding-operation state wrapper over the vision and language adapters."""

    def __init__(self, vision: VisionService, language: LanguageService):
        self.vision = vision
        self.language = language
        self._state = InteractionState()

    @classmethod
    def for_session(cls, session: BackendSession) -> "AIInteractionController":
        return cls(VisionService(session), LanguageService(session))

    def rebind(self, session: BackendSession) -> None:
        """Point the adapters at a fresh session (e.g. a refreshed ID token); state is kept."""
        self.vision = VisionService(session)
        self.language = LanguageService(session)

    # ── State ─────────────────────────────────────────────────────────────

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Optional[str]:
        return self._state.error

    @property
    def result(self):
        return self._state.result

    def reset(self) -> None:
        self._state = InteractionState()

    async def _run(self, operation: str, call: Awaitable[T]) -> T:
        self._state = self._state.model_copy(update={"loading": True, "error": None})
        try:
            data = await call
        except Exception as e:
            message = getattr(e, "message", None) or str(e)
            self._state = self._state.model_copy(update={"loading": False, "error": message})
            logger.warning("AI operation %s failed: %s", operation, message)
            raise
        finally:
            # Cancellation is a BaseException and skips the branch above
            if self._state.loading:
                self._state = self._state.model_copy(update={"loading": False})
        self._state = InteractionState(loading=False, error=None, result=data)
        return data

    # ── Vision ────────────────────────────────────────────────────────────

    async def classify_image(self, file: ImageFile) -> LabelResult:
        return await self._run("classify_image", self.vision.classify_image(file))

    async def detect_text(self, file: ImageFile) -> TextResult:
        return await self._run("detect_text", self.vision.detect_text(file))

    async def analyze_image(self, file: ImageFile) -> ImageAnalysisResult:
        return await self._run("analyze_image", self.vision.analyze_image(file))

    async def detect_faces(self, file: ImageFile) -> FaceDetectionResult:
        return await self._run("detect_faces", self.vision.detect_faces(file))

    # ── Language ──────────────────────────────────────────────────────────

    async def analyze_sentiment(self, text: str) -> SentimentResult:
        return await self._run("analyze_sentiment", self.language.analyze_sentiment(text))

    async def translate_text(self, text: str, target_language: str = "en") -> TranslationResult:
        return await self._run(
            "translate_text", self.language.translate_text(text, target_language)
        )

    async def moderate_content(self, text: str) -> ModerationResult:
        return await self._run("moderate_content", self.language.moderate_content(text))

    async def extract_entities(self, text: str) -> EntityResult:
        return await self._run("extract_entities", self.language.extract_entities(text))

    async def summarize_text(self, text: str, max_sentences: int = 3) -> SummaryResult:
        return await self._run(
            "summarize_text", self.language.summarize_text(text, max_sentences)
        )


class InteractionRegistry:
    """
    One controller per signed-in user.

    Controllers untouched for `idle_timeout` seconds are dropped on the next
    lookup, unless an operation is still in flight. A timeout of 0 keeps
    every controller until `discard()`.
    """

    def __init__(self, idle_timeout: float = 0):
        self.idle_timeout = idle_timeout
        self._controllers: Dict[str, AIInteractionController] = {}
        self._last_seen: Dict[str, float] = {}

    def get(self, session: BackendSession) -> AIInteractionController:
        if session.user is None:
            raise ValueError("An interaction controller needs a signed-in user")
        now = time.monotonic()
        self._evict_idle(now)

        uid = session.user.uid
        controller = self._controllers.get(uid)
        if controller is None:
            controller = AIInteractionController.for_session(session)
            self._controllers[uid] = controller
        else:
            controller.rebind(session)
        self._last_seen[uid] = now
        return controller

    def _evict_idle(self, now: float) -> None:
        if not self.idle_timeout:
            return
        expired = [
            uid
            for uid, seen in self._last_seen.items()
            if now - seen > self.idle_timeout and not self._controllers[uid].loading
        ]
        for uid in expired:
            self.discard(uid)
        if expired:
            logger.debug("Dropped %d idle interaction controllers", len(expired))

    def discard(self, uid: str) -> None:
        self._controllers.pop(uid, None)
        self._last_seen.pop(uid, None)

    def __len__(self) -> int:
        return len(self._controllers)
