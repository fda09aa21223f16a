from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table
from rich.text import Text

from .config import CONFIG_PATH, EXPORT_FORMATS, load_config, save_config
from .models import AVAILABLE_MODELS, Config, model_label


def run_onboarding(console: Console | None = None) -> Config:
    console = console or Console()

    console.clear()

    welcome_text = Text()
    welcome_text.append("Welcome to gijiroku!\n\n", style="bold cyan")
    welcome_text.append("Meeting transcription and minutes with Gemini\n", style="dim")

    console.print(Panel(welcome_text, border_style="cyan", expand=False))
    console.print()

    config = load_config()

    console.print("[bold]Gemini API[/bold]")
    console.print()
    console.print("Enter your Gemini API key:")
    console.print("(Get one at https://aistudio.google.com/app/apikey)")
    api_key = Prompt.ask("API Key", password=True, default="")
    if api_key.strip():
        config.api_key = api_key.strip()

    console.print()
    console.print("[bold]Model[/bold]")
    console.print()
    choices = []
    default_choice = "1"
    for index, option in enumerate(AVAILABLE_MODELS, start=1):
        choices.append(str(index))
        if option.id == config.model:
            default_choice = str(index)
        console.print(f"  {index}. {option.name}")
    console.print()
    model_choice = Prompt.ask("Select option", choices=choices, default=default_choice)
    config.model = AVAILABLE_MODELS[int(model_choice) - 1].id

    console.print()
    console.print("[bold]Speakers[/bold]")
    console.print()
    console.print("How many people usually speak in your recordings? (0 = let the model decide)")
    count = IntPrompt.ask("Speakers", default=config.speaker_count or 0)
    config.speaker_count = count if count > 0 else None

    console.print()
    console.print("[bold]Export[/bold]")
    console.print()
    config.export_format = Prompt.ask("Default export format", choices=list(EXPORT_FORMATS), default=config.export_format)

    console.print()
    console.print("[bold green]✓ Setup Complete![/bold green]")
    console.print()

    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column(style="cyan")
    summary.add_column()

    summary.add_row("API key:", "configured" if config.api_key else "not set")
    summary.add_row("Model:", model_label(config.model))
    summary.add_row("Speakers:", str(config.speaker_count or "auto"))
    summary.add_row("Export format:", config.export_format)

    console.print(Panel(summary, title="Your Configuration", border_style="green"))
    console.print()

    if Confirm.ask("Save this configuration?", default=True):
        save_config(config)
        console.print("[green]Configuration saved to[/green]", CONFIG_PATH)
        console.print()
        console.print("[bold]To transcribe a file, run:[/bold]")
        console.print("  [cyan]gijiroku transcribe <audio-file> --summarise[/cyan]")
        console.print()
    else:
        console.print("[yellow]Configuration not saved. Run 'gijiroku setup' to try again.[/yellow]")
    return config
