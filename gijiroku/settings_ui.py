from __future__ import annotations

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Button, Footer, Header, Input, Label, Select, Static

from .config import CONFIG_PATH, EXPORT_FORMATS, load_config, save_config
from .models import AVAILABLE_MODELS, DEFAULT_MODEL
from .session import parse_speaker_count

MODEL_IDS = {option.id for option in AVAILABLE_MODELS}


class SettingsApp(App):
    CSS = """
    Screen {
        align: center middle;
    }

    #settings-container {
        width: 70;
        height: auto;
        border: solid $primary;
        background: $surface;
        padding: 1 2;
    }

    .section-title {
        text-style: bold;
        color: $accent;
        margin: 1 0;
    }

    .field-row {
        height: 3;
        margin: 0 0 0 2;
    }

    .field-label {
        width: 20;
        content-align: left middle;
    }

    .field-input {
        width: 30;
    }

    #button-container {
        height: 3;
        margin: 1 0 0 0;
        align: center middle;
    }

    Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+s", "save", "Save"),
        Binding("escape", "cancel", "Cancel"),
        Binding("ctrl+c", "quit", "Quit"),
    ]

    def __init__(self):
        super().__init__()
        self.config = load_config()

    def compose(self) -> ComposeResult:
        yield Header()

        with Container(id="settings-container"):
            yield Static("gijiroku Settings", classes="section-title")

            yield Static("Gemini", classes="section-title")
            with Horizontal(classes="field-row"):
                yield Label("API Key:", classes="field-label")
                yield Input(
                    value=self.config.api_key or "",
                    placeholder="AIza...",
                    password=True,
                    id="api_key",
                    classes="field-input",
                )

            with Horizontal(classes="field-row"):
                yield Label("Model:", classes="field-label")
                yield Select(
                    options=[(option.name, option.id) for option in AVAILABLE_MODELS],
                    value=self.config.model if self.config.model in MODEL_IDS else DEFAULT_MODEL,
                    id="model",
                    allow_blank=False,
                )

            yield Static("Transcription", classes="section-title")
            with Horizontal(classes="field-row"):
                yield Label("Speakers:", classes="field-label")
                yield Input(
                    value=str(self.config.speaker_count or ""),
                    placeholder="auto",
                    id="speaker_count",
                    classes="field-input",
                )

            with Horizontal(classes="field-row"):
                yield Label("Export format:", classes="field-label")
                yield Select(
                    options=[(fmt, fmt) for fmt in EXPORT_FORMATS],
                    value=self.config.export_format,
                    id="export_format",
                    allow_blank=False,
                )

            with Horizontal(id="button-container"):
                yield Button("Save", variant="primary", id="save-button")
                yield Button("Cancel", variant="default", id="cancel-button")

        yield Footer()

    def action_save(self) -> None:
        self.save_settings()

    def action_cancel(self) -> None:
        self.exit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-button":
            self.save_settings()
        elif event.button.id == "cancel-button":
            self.exit()

    def save_settings(self) -> None:
        try:
            api_key = self.query_one("#api_key", Input).value.strip()
            self.config.api_key = api_key or None
            self.config.model = str(self.query_one("#model", Select).value)
            self.config.speaker_count = parse_speaker_count(self.query_one("#speaker_count", Input).value)
            self.config.export_format = str(self.query_one("#export_format", Select).value)

            save_config(self.config)
            self.notify(f"Settings saved to {CONFIG_PATH}", severity="information")
            self.exit()
        except Exception as exc:
            self.notify(f"Failed to save settings: {exc}", severity="error")


def show_settings_ui() -> None:
    app = SettingsApp()
    app.run()
