# frontend/controller.py
"""
Wizard state machine and pipeline controller for the BRD workflow.

Steps: transcribe -> brd-setup -> brd-result. `next_step` is the only place a
step changes; the controller owns the in-memory session (files, transcription,
notes, samples, BRD text, bound BRD id), calls the AI gateway directly and
persists results through the REST API.
"""
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

# Import modules (not bare functions) so monkeypatching in tests works correctly
import backend.processors.gateway as _gateway
from backend import monitoring
from backend.llm_wrapper import LLMConfigError
from backend.schemas import BRDRecord, LANGUAGES, DEFAULT_LANGUAGE
from frontend import files as _files
from frontend.chat import ChatPanel
from frontend.history import HistoryPanel

TRANSCRIBE_WORKERS = int(os.getenv("TRANSCRIBE_WORKERS", "4"))

BRD_EXPORT_NAME = "Business_Requirements_Document.md"
TRANSCRIPTION_EXPORT_NAME = "transcription.txt"


class WizardStep(str, Enum):
    TRANSCRIBE = "transcribe"
    BRD_SETUP = "brd-setup"
    BRD_RESULT = "brd-result"


class WizardAction(str, Enum):
    PROCEED = "proceed"
    GENERATED = "generated"
    BACK_TO_SETUP = "back_to_setup"
    BACK_TO_TRANSCRIBE = "back_to_transcribe"
    RESET = "reset"
    RESUME = "resume"


class InvalidTransition(ValueError):
    pass


_TRANSITIONS = {
    (WizardStep.TRANSCRIBE, WizardAction.PROCEED): WizardStep.BRD_SETUP,
    (WizardStep.BRD_SETUP, WizardAction.GENERATED): WizardStep.BRD_RESULT,
    (WizardStep.BRD_SETUP, WizardAction.BACK_TO_TRANSCRIBE): WizardStep.TRANSCRIBE,
    (WizardStep.BRD_RESULT, WizardAction.BACK_TO_SETUP): WizardStep.BRD_SETUP,
    (WizardStep.BRD_RESULT, WizardAction.BACK_TO_TRANSCRIBE): WizardStep.TRANSCRIBE,
}


def next_step(step: WizardStep, action: WizardAction) -> WizardStep:
    # reset and history resume are legal from anywhere
    if action == WizardAction.RESET:
        return WizardStep.TRANSCRIBE
    if action == WizardAction.RESUME:
        return WizardStep.BRD_RESULT
    try:
        return _TRANSITIONS[(step, action)]
    except KeyError:
        raise InvalidTransition(f"cannot {action.value} from {step.value}") from None


ERRORS = {
    "transcribe": {
        "en": "Failed to transcribe media. Please try again with smaller files or different formats.",
        "ar": "فشل نسخ الوسائط. يرجى المحاولة مرة أخرى بملفات أصغر أو بصيغ مختلفة.",
    },
    "generate": {
        "en": "Failed to generate BRD. Please check your inputs and try again.",
        "ar": "فشل إنشاء وثيقة متطلبات العمل. يرجى التحقق من المدخلات والمحاولة مرة أخرى.",
    },
    "refine": {
        "en": "Failed to refine BRD. Please try again.",
        "ar": "فشل تحسين وثيقة متطلبات العمل. يرجى المحاولة مرة أخرى.",
    },
    "final_upload": {
        "en": "Failed to upload the final document.",
        "ar": "فشل رفع الوثيقة النهائية.",
    },
}


@dataclass
class PipelineState:
    step: WizardStep = WizardStep.TRANSCRIBE
    language: str = DEFAULT_LANGUAGE
    files: List[_files.MediaFile] = field(default_factory=list)
    transcription: Optional[str] = None
    extra_notes: str = ""
    sample_files: List[_files.SampleFile] = field(default_factory=list)
    brd_content: Optional[str] = None
    brd_id: Optional[str] = None
    title: Optional[str] = None
    error: Optional[str] = None
    is_processing: bool = False
    is_refining: bool = False
    is_uploading_final: bool = False
    show_chat: bool = False

    @property
    def is_rtl(self) -> bool:
        return self.language == "ar"


class PipelineController:
    def __init__(self, api, history: Optional[HistoryPanel] = None,
                 max_workers: int = TRANSCRIBE_WORKERS):
        self.api = api
        self.history = history or HistoryPanel(api)
        self.max_workers = max_workers
        self.state = PipelineState()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _apply(self, action: WizardAction) -> WizardStep:
        self.state.step = next_step(self.state.step, action)
        return self.state.step

    def _fail(self, kind: str) -> bool:
        self.state.error = ERRORS[kind].get(self.state.language) or ERRORS[kind]["en"]
        return False

    def _workers(self, n: int) -> int:
        return max(1, min(n, self.max_workers))

    # ------------------------------------------------------------------
    # step 1: transcribe
    # ------------------------------------------------------------------
    def set_language(self, language: str) -> None:
        if language not in LANGUAGES:
            raise ValueError(f"unsupported language: {language}")
        self.state.language = language

    def add_files(self, new_files: Iterable[_files.MediaFile]) -> int:
        """Append audio/video files; anything else is ignored. Returns how many were added."""
        media = _files.only_media(new_files)
        self.state.files.extend(media)
        return len(media)

    def remove_file(self, index: int) -> None:
        del self.state.files[index]

    def transcribe(self) -> bool:
        """
        Transcribe every file in parallel and join the results in file order.
        One failed file fails the whole batch.
        """
        s = self.state
        if not s.files or s.is_processing:
            return False

        s.is_processing = True
        s.error = None
        s.transcription = None
        language = s.language
        media = list(s.files)
        try:
            with ThreadPoolExecutor(max_workers=self._workers(len(media))) as pool:
                results = list(pool.map(
                    lambda f: _gateway.transcribe_media(f.data, f.mime_type, language), media
                ))
        except LLMConfigError:
            raise
        except Exception:
            monitoring.logger.exception("Transcription batch failed")
            return self._fail("transcribe")
        finally:
            s.is_processing = False

        if any(r.failed for r in results):
            return self._fail("transcribe")

        s.transcription = _files.join_transcriptions([f.name for f in media], [r.text for r in results])
        monitoring.logger.info("Transcribed media", extra={"files": len(media), "language": language})
        return True

    def proceed_to_setup(self) -> WizardStep:
        if not self.state.transcription:
            raise InvalidTransition("no transcription yet")
        return self._apply(WizardAction.PROCEED)

    # ------------------------------------------------------------------
    # step 2: BRD setup
    # ------------------------------------------------------------------
    def set_notes(self, notes: str) -> None:
        self.state.extra_notes = notes or ""

    def add_samples(self, samples: Iterable[_files.SampleFile]) -> None:
        self.state.sample_files.extend(samples)

    def remove_sample(self, index: int) -> None:
        del self.state.sample_files[index]

    @staticmethod
    def _parse_or_drop(f: _files.SampleFile):
        try:
            return _files.parse_sample(f)
        except Exception:
            monitoring.logger.warning("Dropping unreadable sample", extra={"sample": f.name})
            return None

    def parse_samples(self) -> List[_gateway.SampleAttachment]:
        samples = list(self.state.sample_files)
        if not samples:
            return []
        with ThreadPoolExecutor(max_workers=self._workers(len(samples))) as pool:
            parsed = list(pool.map(self._parse_or_drop, samples))
        return [p for p in parsed if p is not None]

    def back_to_transcribe(self) -> WizardStep:
        return self._apply(WizardAction.BACK_TO_TRANSCRIBE)

    def generate(self) -> bool:
        """Generate the BRD, store it as a new record and open the result step."""
        s = self.state
        if not s.transcription or s.is_processing:
            return False

        s.is_processing = True
        s.error = None
        try:
            samples = self.parse_samples()
            result = _gateway.generate_brd(s.transcription, s.extra_notes, samples, s.language)
            if result.failed:
                return self._fail("generate")
            s.brd_content = result.text

            title = _files.derive_title(s.files)
            brd_id = self.api.create_brd(
                title=title,
                content=result.text,
                transcription=s.transcription,
                extra_notes=s.extra_notes,
                language=s.language,
            )
        except LLMConfigError:
            raise
        except Exception:
            monitoring.logger.exception("BRD generation failed")
            return self._fail("generate")
        finally:
            s.is_processing = False

        s.brd_id = brd_id
        s.title = title
        s.show_chat = False
        self.history.refresh()
        self._apply(WizardAction.GENERATED)
        return True

    # ------------------------------------------------------------------
    # step 3: BRD result
    # ------------------------------------------------------------------
    def back_to_setup(self) -> WizardStep:
        return self._apply(WizardAction.BACK_TO_SETUP)

    def _persist_content(self) -> None:
        if self.state.brd_id:
            self.api.update_brd_content(self.state.brd_id, self.state.brd_content)
            self.history.refresh()

    def refine(self, command: str) -> bool:
        """Apply a natural-language edit to the whole BRD and persist it when a session is bound."""
        s = self.state
        command = (command or "").strip()
        if not command or not s.brd_content or s.is_refining:
            return False

        s.is_refining = True
        s.error = None
        try:
            result = _gateway.refine_brd(s.brd_content, command, s.language)
            if result.failed:
                return self._fail("refine")
            if result.status == _gateway.GatewayStatus.EMPTY:
                # the model said nothing; keep the document as is
                return True
            s.brd_content = result.text
            self._persist_content()
        except LLMConfigError:
            raise
        except Exception:
            monitoring.logger.exception("BRD refinement failed", extra={"brd_id": s.brd_id})
            return self._fail("refine")
        finally:
            s.is_refining = False
        return True

    def save_edit(self, text: str) -> bool:
        """Replace the BRD with a manually edited version."""
        self.state.brd_content = text
        try:
            self._persist_content()
        except Exception:
            monitoring.logger.exception("Saving edited BRD failed", extra={"brd_id": self.state.brd_id})
            return self._fail("refine")
        return True

    def upload_final(self, filename: str, data: bytes, mime_type: Optional[str] = None) -> Optional[str]:
        """Attach the approved document to the bound BRD. Returns the stored path."""
        s = self.state
        if not s.brd_id or s.is_uploading_final:
            return None
        s.is_uploading_final = True
        try:
            path = self.api.upload_final(s.brd_id, filename, data, mime_type)
        except Exception:
            monitoring.logger.exception("Failed to upload final doc", extra={"brd_id": s.brd_id})
            self._fail("final_upload")
            return None
        finally:
            s.is_uploading_final = False
        self.history.refresh()
        return path

    def final_doc_url(self) -> Optional[str]:
        if not self.state.brd_id:
            return None
        record = self.history.find(self.state.brd_id)
        return self.history.final_doc_url(record) if record else None

    def toggle_chat(self) -> bool:
        self.state.show_chat = not self.state.show_chat
        return self.state.show_chat

    def open_chat(self) -> ChatPanel:
        s = self.state
        if not s.brd_id:
            raise InvalidTransition("chat needs a stored BRD")
        panel = ChatPanel(self.api, s.brd_id, s.brd_content or "", s.language)
        panel.load()
        return panel

    def export_markdown(self) -> Tuple[str, bytes]:
        return BRD_EXPORT_NAME, (self.state.brd_content or "").encode("utf-8")

    def export_transcription(self) -> Tuple[str, bytes]:
        return TRANSCRIPTION_EXPORT_NAME, (self.state.transcription or "").encode("utf-8")

    # ------------------------------------------------------------------
    # whole-session operations
    # ------------------------------------------------------------------
    def reset(self) -> WizardStep:
        """Start over: everything but the language preference is cleared."""
        self.state = PipelineState(language=self.state.language)
        return self.state.step

    def resume(self, record: Union[str, BRDRecord]) -> WizardStep:
        """Jump into the result step of a stored BRD, replacing the whole session."""
        if isinstance(record, str):
            record = self.history.select(record)
        step = next_step(self.state.step, WizardAction.RESUME)
        self.state = PipelineState(
            step=step,
            language=record.language,
            transcription=record.transcription,
            extra_notes=record.extra_notes or "",
            brd_content=record.content or "",
            brd_id=record.id,
            title=record.title,
        )
        return step
