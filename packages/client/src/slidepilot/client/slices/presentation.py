"""PresentationSlice -- 生成状态、思考步骤、幻灯片预览与最终产物

幻灯片按到达顺序存储、按 order_index 展示；同 id 原位替换。
思考步骤状态单调（pending -> running -> completed），迟到的旧状态被丢弃。
generation_status 只允许 GENERATION_TRANSITIONS 中的流转。
"""

from slidepilot.core.models import (
    THINKING_STATUS_RANK,
    GenerationErrorReason,
    GenerationStatus,
    Presentation,
    Slide,
    SlidePreview,
    ThinkingStep,
    validate_generation_transition,
)


class PresentationSlice:
    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.generation_status: GenerationStatus = GenerationStatus.IDLE
        self.active_task_id: str | None = None
        self.thinking_steps: dict[str, ThinkingStep] = {}
        self.slides: dict[str, SlidePreview] = {}
        self.live_preview_slide: SlidePreview | None = None
        self.final_presentation: Presentation | None = None
        self.progress: int | None = None
        self.last_error: str | None = None
        self.error_reason: GenerationErrorReason | None = None

    def begin(self, task_id: str) -> None:
        """切换到新的生成任务（上一任务已结束或尚未开始）"""
        self.active_task_id = task_id
        self.generation_status = GenerationStatus.IDLE
        self.progress = None
        self.last_error = None
        self.error_reason = None

    def set_status(self, status: GenerationStatus) -> bool:
        if not validate_generation_transition(self.generation_status, status):
            return False
        self.generation_status = status
        return True

    def upsert_thinking_step(self, step: ThinkingStep) -> bool:
        existing = self.thinking_steps.get(step.id)
        if existing is not None:
            if THINKING_STATUS_RANK[step.status] < THINKING_STATUS_RANK[existing.status]:
                return False
            step = existing.model_copy(update=step.model_dump(exclude_none=True))
        self.thinking_steps[step.id] = step
        return True

    def upsert_slide(self, slide: SlidePreview) -> None:
        self.slides[slide.id] = slide
        self.live_preview_slide = slide

    @property
    def ordered_slides(self) -> list[SlidePreview]:
        return sorted(self.slides.values(), key=lambda slide: slide.order_index)

    @property
    def final_slides(self) -> list[Slide]:
        return self.final_presentation.slides if self.final_presentation else []

    def set_final_presentation(self, presentation: Presentation) -> bool:
        """写入最终产物并标记 completed"""
        if not self.set_status(GenerationStatus.COMPLETED):
            return False
        self.final_presentation = presentation
        self.live_preview_slide = None
        self.progress = 100
        return True

    def set_error(self, message: str, reason: GenerationErrorReason) -> bool:
        if not self.set_status(GenerationStatus.ERROR):
            return False
        self.last_error = message
        self.error_reason = reason
        return True
