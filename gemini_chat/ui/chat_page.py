"""NiceGUI chat page driving the streaming controller in-process."""

import logging

from nicegui import events, ui

from gemini_chat.chat.config import AVAILABLE_MODELS, SessionConfig, get_app_config
from gemini_chat.chat.controller import (
    ErrorSink,
    RenderSink,
    StreamingController,
    describe_user_turn,
)
from gemini_chat.chat.encoder import guess_mime_type
from gemini_chat.chat.provider import GeminiProvider
from gemini_chat.models.schemas import Message, Role, Severity, TurnOutcome, UploadedFile

logger = logging.getLogger(__name__)

CUSTOM_CSS = """
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&display=swap"
      rel="stylesheet">
<style>
    * { font-family: 'Inter', sans-serif; }

    body { background: #f1f3f4; min-height: 100vh; }

    .app-container {
        background: white;
        border-radius: 12px;
        box-shadow: 0 2px 8px rgba(0, 0, 0, 0.1);
        overflow: hidden;
    }

    .header { background: linear-gradient(135deg, #4285f4 0%, #9b72cb 100%); }

    .message-user {
        background: #4285f4;
        color: white;
        border-radius: 18px 18px 4px 18px;
    }

    .message-model {
        background: #f3f4f6;
        color: #1f2937;
        border-radius: 18px 18px 18px 4px;
    }

    .message-system { color: #6b7280; font-style: italic; }

    .thinking-box {
        background: #fef9e7;
        border-left: 3px solid #f4b400;
        border-radius: 6px;
    }

    .input-box {
        background: #f9fafb;
        border: 1px solid #e5e7eb;
        border-radius: 12px;
    }
    .input-box:focus-within { border-color: #4285f4; }
</style>
"""

_SEVERITY_TO_NOTIFY = {
    Severity.INFO: "info",
    Severity.WARNING: "warning",
    Severity.ERROR: "negative",
}


class ChatPageSink(RenderSink, ErrorSink):
    """Bridges controller events to the page's widgets."""

    def __init__(self) -> None:
        self.response_view: ui.markdown | None = None
        self.thinking_label: ui.label | None = None
        self._text = ""

    def on_chunk(self, text: str) -> None:
        self._text += text
        if self.response_view is not None:
            self.response_view.set_content(self._text)

    def on_stream_restarted(self) -> None:
        self._text = ""
        if self.response_view is not None:
            self.response_view.set_content("")

    def on_message(self, message: Message) -> None:
        self._text = ""

    def on_thinking_started(self) -> None:
        if self.thinking_label is not None:
            self.thinking_label.set_visibility(True)

    def on_thinking_stopped(self) -> None:
        if self.thinking_label is not None:
            self.thinking_label.set_visibility(False)

    def on_cancelled(self) -> None:
        self._text = ""
        ui.notify("Response generation cancelled", type="info")

    def report(self, title: str, description: str, severity: Severity) -> None:
        super().report(title, description, severity)
        ui.notify(f"{title}: {description}", type=_SEVERITY_TO_NOTIFY[severity])


def _build_controller(sink: ChatPageSink) -> StreamingController | None:
    try:
        app_config = get_app_config()
    except ValueError as e:
        logger.error(f"Cannot start chat: {e}")
        return None
    provider = GeminiProvider(api_key=app_config.api_key)
    return StreamingController(provider, SessionConfig(), render_sink=sink, error_sink=sink)


@ui.page("/")
def chat_page() -> None:
    """Main chat page."""
    ui.add_head_html(CUSTOM_CSS)
    sink = ChatPageSink()
    controller = _build_controller(sink)
    if controller is None:
        ui.label("Set GEMINI_API_KEY in your environment or .env file to start chatting.").classes(
            "text-lg text-red-600 p-8"
        )
        return

    messages_container: ui.column
    input_field: ui.textarea
    send_btn: ui.button
    cancel_btn: ui.button
    attachments_row: ui.row
    upload: ui.upload

    def render_message(msg: Message) -> None:
        if msg.role == Role.SYSTEM:
            with ui.row().classes("w-full justify-center"):
                ui.label(msg.content).classes("text-sm message-system")
            return

        is_user = msg.role == Role.USER
        align = "justify-end" if is_user else "justify-start"
        bubble = "message-user" if is_user else "message-model"
        with ui.row().classes(f"w-full {align}"), ui.column().classes("max-w-[75%] gap-1"):
            if msg.thinking and controller.config.thinking_enabled:
                with ui.expansion("Thinking process", icon="psychology").classes(
                    "w-full thinking-box text-sm"
                ):
                    ui.markdown(msg.thinking).classes("text-sm")
            with ui.element("div").classes(f"px-4 py-3 {bubble}"):
                if is_user:
                    ui.label(msg.content).classes("text-sm whitespace-pre-wrap")
                else:
                    ui.markdown(msg.content).classes("text-sm leading-relaxed")
            with ui.row().classes("items-center gap-2"):
                ui.label(msg.timestamp.strftime("%b %d, %I:%M %p")).classes(
                    "text-[10px] text-gray-400"
                )
                if not is_user:
                    ui.button(icon="content_copy", on_click=lambda m=msg: copy_message(m)).props(
                        "flat dense round size=xs"
                    )

    def copy_message(msg: Message) -> None:
        ui.clipboard.write(msg.content)
        ui.notify("Message copied to clipboard")

    def refresh_messages() -> None:
        messages_container.clear()
        with messages_container:
            for msg in controller.conversation:
                render_message(msg)

    def refresh_attachments() -> None:
        attachments_row.clear()
        with attachments_row:
            for pending in controller.pending_files:
                ui.chip(pending.name, icon="attach_file").props("dense outline")

    def set_busy(busy: bool) -> None:
        send_btn.set_visibility(not busy)
        cancel_btn.set_visibility(busy)

    async def handle_upload(e: events.UploadEventArguments) -> None:
        data = await e.file.read()
        controller.attach(
            UploadedFile(
                name=e.file.name,
                mime_type=e.file.content_type or guess_mime_type(e.file.name),
                data=data,
            )
        )
        refresh_attachments()
        count = len(controller.pending_files)
        ui.notify(f"{count} file{'s' if count > 1 else ''} ready to upload")

    async def send_message() -> None:
        if controller.is_busy:
            return
        text = input_field.value or ""
        if not text.strip() and not controller.pending_files:
            return

        input_field.value = ""
        set_busy(True)
        refresh_messages()
        with messages_container:
            render_message(
                Message(
                    content=describe_user_turn(text.strip(), controller.pending_files),
                    role=Role.USER,
                )
            )
        with messages_container, ui.row().classes("w-full justify-start"):
            with ui.column().classes("max-w-[75%] gap-1"):
                sink.thinking_label = ui.label("Thinking...").classes(
                    "text-sm text-gray-500 italic"
                )
                sink.thinking_label.set_visibility(False)
                with ui.element("div").classes("message-model px-4 py-3"):
                    sink.response_view = ui.markdown("").classes("text-sm leading-relaxed")

        try:
            outcome = await controller.submit(text)
        finally:
            sink.response_view = None
            sink.thinking_label = None
            upload.reset()
            refresh_attachments()
            set_busy(False)
            refresh_messages()
        logger.debug(f"Turn finished: {outcome.value}")
        if outcome == TurnOutcome.REJECTED:
            ui.notify("Type a message or attach a file first", type="warning")

    def cancel_generation() -> None:
        controller.cancel()

    def new_chat() -> None:
        controller.reset()
        controller.clear_pending()
        upload.reset()
        refresh_attachments()
        refresh_messages()
        ui.notify("Started a new conversation")

    def change_model(e: events.ValueChangeEventArguments) -> None:
        config = controller.select_model(e.value)
        temperature.value = config.temperature
        max_tokens.value = config.max_output_tokens
        ui.notify(f"Now using {config.model_option.name}")

    def apply_settings() -> None:
        try:
            config = SessionConfig.model_validate(
                {
                    **controller.config.model_dump(),
                    "system_instruction": system_prompt.value,
                    "temperature": float(temperature.value),
                    "top_p": float(top_p.value),
                    "top_k": int(top_k.value),
                    "max_output_tokens": int(max_tokens.value),
                    "code_execution_enabled": code_execution.value,
                    "thinking_enabled": show_thinking.value,
                }
            )
        except (TypeError, ValueError) as e:
            ui.notify(f"Invalid settings: {e}", type="negative")
            return
        controller.update_config(config)
        settings_drawer.hide()
        ui.notify("New settings will apply to your next message")

    # === Settings ===
    config = controller.config
    with ui.right_drawer(value=False).classes("bg-white p-4 gap-3") as settings_drawer:
        ui.label("Settings").classes("text-lg font-semibold")
        ui.select(
            {m.id: m.name for m in AVAILABLE_MODELS},
            value=config.model_id,
            label="Model",
            on_change=change_model,
        ).classes("w-full")
        system_prompt = ui.textarea("System instruction", value=config.system_instruction).classes(
            "w-full"
        )
        ui.label("Temperature")
        temperature = ui.slider(min=0.0, max=2.0, step=0.05, value=config.temperature).props(
            "label"
        )
        ui.label("Top P")
        top_p = ui.slider(min=0.0, max=1.0, step=0.01, value=config.top_p).props("label")
        top_k = ui.number("Top K", value=config.top_k, min=1, precision=0).classes("w-full")
        max_tokens = ui.number(
            "Max output tokens", value=config.max_output_tokens, min=1, precision=0
        ).classes("w-full")
        code_execution = ui.switch("Code execution", value=config.code_execution_enabled)
        show_thinking = ui.switch("Show thinking process", value=config.thinking_enabled)
        ui.button("Apply", on_click=apply_settings).classes("w-full")

    # === UI Layout ===
    with (
        ui.element("div").classes("w-full min-h-screen p-4 md:p-8"),
        ui.column().classes("w-full max-w-3xl mx-auto app-container").style(
            "height: calc(100vh - 4rem)"
        ),
    ):
        # Header
        with ui.row().classes("w-full header px-5 py-4 items-center justify-between"):
            with ui.row().classes("items-center gap-3"):
                ui.icon("auto_awesome").classes("text-white text-3xl")
                ui.label("Gemini Chat").classes("text-lg font-semibold text-white")
            with ui.row().classes("items-center gap-1"):
                ui.button(icon="add", on_click=new_chat).props("flat round color=white")
                ui.button(icon="tune", on_click=settings_drawer.toggle).props(
                    "flat round color=white"
                )

        # Messages
        with (
            ui.scroll_area().classes("flex-grow w-full bg-gray-50"),
            ui.column().classes("w-full p-5"),
        ):
            messages_container = ui.column().classes("w-full gap-4")
            refresh_messages()

        # Input
        with ui.column().classes("w-full p-4 gap-2 bg-white border-t"):
            attachments_row = ui.row().classes("gap-2")
            with ui.row().classes("w-full gap-3 items-end"):
                upload = (
                    ui.upload(on_upload=handle_upload, multiple=True, auto_upload=True)
                    .props("flat dense hide-upload-btn")
                    .classes("max-w-[12rem]")
                )
                with ui.element("div").classes("flex-grow input-box px-3 py-2"):
                    input_field = (
                        ui.textarea(placeholder="Type a message...")
                        .props("autogrow borderless dense rows=1")
                        .classes("w-full")
                        .on("keydown.enter.prevent", send_message)
                    )
                send_btn = ui.button(icon="send", on_click=send_message).props("round unelevated")
                cancel_btn = ui.button(icon="stop", on_click=cancel_generation).props(
                    "round unelevated color=negative"
                )
                cancel_btn.set_visibility(False)
