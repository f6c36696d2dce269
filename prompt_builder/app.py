"""Prompt Builder - Main Gradio UI Application."""

import argparse
import logging
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Tuple

import gradio as gr
from dotenv import load_dotenv

from .config import (
    get_storage_dir,
    get_user_config_path,
    load_user_config,
    save_user_config,
    validate_user_config,
)
from .document import LIST_FIELDS, PARAMETER_FIELDS, SCALAR_FIELDS
from .errors import ImportParseError, PromptBuilderError
from .formats import FORMATS
from .session import BuilderSession
from .storage import FileStorage

logger = logging.getLogger(__name__)

FORM_FIELDS = SCALAR_FIELDS + LIST_FIELDS + PARAMETER_FIELDS

# Slider position shown for a penalty the document does not carry
UNSET_PENALTY = 0.0


def _lines(text: str) -> List[str]:
    if not text:
        return []
    return text.split("\n")


def _format_timestamp(ms: Optional[int]) -> str:
    if ms is None:
        return "unknown date"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


class BuilderUI:
    """Gradio event handlers bound to one editing session."""

    def __init__(self, session: BuilderSession):
        self.session = session

    # ========================================================================
    # Form <-> document
    # ========================================================================

    def form_values(self) -> Tuple[Any, ...]:
        """Current document as values for the form components, in FORM_FIELDS order."""
        doc = self.session.document
        values: List[Any] = [getattr(doc, name) for name in SCALAR_FIELDS]
        values += ["\n".join(getattr(doc, name)) for name in LIST_FIELDS]
        for name in PARAMETER_FIELDS:
            value = getattr(doc.parameters, name)
            values.append(UNSET_PENALTY if value is None else value)
        return tuple(values)

    def apply_form(self, *values) -> str:
        """Copy the form into the document and return the refreshed preview."""
        doc = self.session.document
        for name, value in zip(FORM_FIELDS, values):
            if name in SCALAR_FIELDS:
                doc.set_field(name, value or "")
            elif name in LIST_FIELDS:
                doc.set_items(name, _lines(value))
            elif value is not None:
                # an untouched slider leaves an absent penalty absent
                if getattr(doc.parameters, name) is None and value == UNSET_PENALTY:
                    continue
                doc.set_parameter(name, value)
        return self.session.preview()

    def select_format(self, format_key: str) -> str:
        self.session.select_format(format_key)
        return self.session.preview()

    # ========================================================================
    # List toolbar
    # ========================================================================

    def _list_action(self, action: str, field: str, position: float, values) -> tuple:
        self.apply_form(*values)
        index = int(position or 1) - 1
        doc = self.session.document

        if action == "add":
            doc.add_item(field)
        elif action == "up":
            doc.move_item(field, index, -1)
        elif action == "down":
            doc.move_item(field, index, 1)
        elif action == "remove":
            doc.remove_item(field, index)

        return self.form_values() + (self.session.preview(),)

    def add_item_ui(self, field: str, position: float, *values) -> tuple:
        return self._list_action("add", field, position, values)

    def move_up_ui(self, field: str, position: float, *values) -> tuple:
        return self._list_action("up", field, position, values)

    def move_down_ui(self, field: str, position: float, *values) -> tuple:
        return self._list_action("down", field, position, values)

    def remove_item_ui(self, field: str, position: float, *values) -> tuple:
        return self._list_action("remove", field, position, values)

    # ========================================================================
    # Import / export
    # ========================================================================

    def import_ui(self, file_path: Optional[str]) -> tuple:
        """Import a JSON file into the editor."""
        if not file_path:
            return self.form_values() + (self.session.preview(), "⚠️ No file selected")

        try:
            self.session.import_json(Path(file_path).read_bytes())
        except ImportParseError as e:
            return self.form_values() + (self.session.preview(), f"❌ {e}")
        except OSError as e:
            return self.form_values() + (self.session.preview(), f"❌ Error reading file: {e}")

        return self.form_values() + (self.session.preview(), f"✅ Imported {Path(file_path).name}")

    def export_ui(self, *values) -> Tuple[List[str], str]:
        """Write the four artifacts to a temporary directory for download."""
        self.apply_form(*values)
        out_dir = Path(tempfile.mkdtemp(prefix="prompt-builder-"))

        paths = []
        for artifact in self.session.export_all():
            path = out_dir / artifact.filename
            path.write_text(artifact.text, encoding="utf-8")
            paths.append(str(path))

        return paths, f"✅ Exported {len(paths)} files"

    # ========================================================================
    # Library
    # ========================================================================

    def library_choices(self) -> List[Tuple[str, str]]:
        return [
            (f"{entry.title} ({_format_timestamp(entry.updated_at)})", entry.id)
            for entry in self.session.list_entries()
        ]

    def _library_update(self, value: Optional[str] = None):
        return gr.update(choices=self.library_choices(), value=value)

    def save_ui(self, title: str, *values) -> tuple:
        self.apply_form(*values)
        entry_id = self.session.save(title)
        return self._library_update(entry_id), "✅ Saved to library"

    def save_as_new_ui(self, title: str, *values) -> tuple:
        self.apply_form(*values)
        entry_id = self.session.save_as_new(title)
        return self._library_update(entry_id), "✅ Saved as new entry"

    def load_ui(self, entry_id: Optional[str]) -> tuple:
        if not entry_id:
            return self.form_values() + (self.session.preview(), "", "⚠️ No entry selected")
        if not self.session.load(entry_id):
            return self.form_values() + (self.session.preview(), "", "❌ Entry not found")

        entry = self.session.library.get(entry_id)
        return self.form_values() + (self.session.preview(), entry.title, f"✅ Loaded {entry.title}")

    def duplicate_ui(self, entry_id: Optional[str]) -> tuple:
        new_id = self.session.duplicate(entry_id) if entry_id else None
        if not new_id:
            return self._library_update(entry_id), "❌ Entry not found"
        return self._library_update(new_id), "✅ Duplicated"

    def rename_ui(self, entry_id: Optional[str], title: str) -> tuple:
        if not entry_id or not title.strip():
            return self._library_update(entry_id), "⚠️ Select an entry and enter a title"
        if not self.session.rename(entry_id, title.strip()):
            return self._library_update(entry_id), "❌ Entry not found"
        return self._library_update(entry_id), f"✅ Renamed to {title.strip()}"

    def delete_ui(self, entry_id: Optional[str]) -> tuple:
        if not entry_id or not self.session.delete(entry_id):
            return self._library_update(), "❌ Entry not found"
        return self._library_update(), "✅ Deleted"

    def new_document_ui(self) -> tuple:
        self.session.new_document()
        return self.form_values() + (self.session.preview(), "", "✅ Started a new prompt")

    # ========================================================================
    # Provider and generation
    # ========================================================================

    def save_credentials_ui(self, provider: str, api_key: str, base_url: str, model: str) -> str:
        config = self.session.config
        config["provider"] = provider
        config["model"] = model
        self.session.credentials.set_api_key(provider, api_key.strip())
        self.session.credentials.set_base_url(provider, base_url.strip())

        errors = validate_user_config(config)
        if errors:
            return "⚠️ Issues:\n" + "\n".join(f"  - {e}" for e in errors)
        return save_user_config(config)

    async def generate_ui(self, format_key: str, *values) -> Tuple[str, str]:
        """Refine the selected format with the provider."""
        self.apply_form(*values)
        self.session.select_format(format_key)

        try:
            await self.session.generate(format_key)
        except PromptBuilderError as e:
            return self.session.preview(), f"❌ {e}"

        return self.session.preview(), f"✅ Refined {FORMATS[format_key].label} preview"


# ============================================================================
# Main UI
# ============================================================================


def create_ui(session: BuilderSession):
    """Create Gradio UI."""
    ui = BuilderUI(session)
    config = session.config
    provider = session.provider

    with gr.Blocks(title="Prompt Builder") as demo:
        gr.Markdown("# 🧩 Prompt Builder\nCompose structured prompts and export them as Markdown, JSON, YAML or SMILE")

        with gr.Row():
            # ================================================================
            # Composition
            # ================================================================

            with gr.Column():
                gr.Markdown("### Prompt Composition")

                title_input = gr.Textbox(label="Title", placeholder="Name of this prompt")
                role_input = gr.Textbox(label="Role", placeholder="e.g. Helpful AI assistant")
                task_input = gr.Textbox(label="Task", placeholder="Describe what you want the model to do")
                audience_input = gr.Textbox(label="Audience", placeholder="Who is the prompt for?")
                with gr.Row():
                    style_input = gr.Textbox(label="Style", placeholder="e.g. Formal, casual")
                    tone_input = gr.Textbox(label="Tone", placeholder="e.g. Friendly, neutral")

                constraints_input = gr.Textbox(label="Constraints (one per line)", lines=3)
                steps_input = gr.Textbox(label="Steps (one per line)", lines=3)
                inputs_input = gr.Textbox(label="Inputs (one per line, name: value)", lines=3, placeholder="topic: Artificial Intelligence")
                examples_input = gr.Textbox(label="Few-shot examples (one per line)", lines=3)

                with gr.Row():
                    list_field = gr.Dropdown(choices=list(LIST_FIELDS), value="constraints", label="List", scale=2)
                    list_position = gr.Number(value=1, minimum=1, precision=0, label="Item #", scale=1)
                with gr.Row():
                    add_item_btn = gr.Button("➕ Add", size="sm")
                    move_up_btn = gr.Button("↑ Up", size="sm")
                    move_down_btn = gr.Button("↓ Down", size="sm")
                    remove_item_btn = gr.Button("✖ Remove", size="sm")

                import_file = gr.File(label="Import from JSON", file_types=[".json"], type="filepath")
                import_btn = gr.Button("📥 Import", size="sm")

            # ================================================================
            # Parameters & preview
            # ================================================================

            with gr.Column():
                gr.Markdown("### Model Parameters & Preview")

                with gr.Row():
                    temperature_slider = gr.Slider(minimum=0, maximum=2, value=0.7, step=0.01, label="Temperature")
                    top_p_slider = gr.Slider(minimum=0, maximum=1, value=1.0, step=0.01, label="Top-p")
                with gr.Row():
                    max_tokens_slider = gr.Slider(minimum=1, maximum=32000, value=1024, step=1, label="Max tokens")
                with gr.Row():
                    presence_slider = gr.Slider(minimum=-2, maximum=2, value=0.0, step=0.01, label="Presence penalty")
                    frequency_slider = gr.Slider(minimum=-2, maximum=2, value=0.0, step=0.01, label="Frequency penalty")

                format_radio = gr.Radio(
                    choices=[(f.label, f.key) for f in FORMATS.values()],
                    value=session.active_format,
                    label="Preview format",
                )
                preview_box = gr.Textbox(label="Preview", value=session.preview(), lines=18, interactive=False)

                with gr.Row():
                    export_btn = gr.Button("💾 Export files", variant="primary")
                    generate_btn = gr.Button("✨ Refine with AI", variant="primary")
                export_files = gr.File(label="Downloads", file_count="multiple", interactive=False)
                status = gr.Textbox(label="Status", interactive=False)

        # ====================================================================
        # Library
        # ====================================================================

        with gr.Accordion("📚 Library", open=False):
            with gr.Row():
                library_dropdown = gr.Dropdown(choices=ui.library_choices(), label="Saved prompts", scale=3)
                entry_title = gr.Textbox(label="Entry title", scale=2)
            with gr.Row():
                save_btn = gr.Button("💾 Save", size="sm")
                save_new_btn = gr.Button("📄 Save as new", size="sm")
                load_btn = gr.Button("📂 Load", size="sm")
                duplicate_btn = gr.Button("⧉ Duplicate", size="sm")
                rename_btn = gr.Button("✏️ Rename", size="sm")
                delete_btn = gr.Button("🗑️ Delete", size="sm")
                new_btn = gr.Button("🆕 New prompt", size="sm")

        # ====================================================================
        # Provider
        # ====================================================================

        with gr.Accordion("⚙️ Provider", open=not session.credentials.is_configured(provider)):
            gr.Markdown(f"Settings are saved to `{get_user_config_path()}`")
            with gr.Row():
                provider_dropdown = gr.Dropdown(
                    choices=list((config.get("presets") or {}).keys()),
                    value=provider,
                    label="Provider",
                )
                model_input = gr.Textbox(label="Model", value=config.get("model", ""))
            api_key_input = gr.Textbox(label="API Key", type="password", value=session.credentials.get_api_key(provider))
            base_url_input = gr.Textbox(label="Base URL", value=session.credentials.get_base_url(provider), placeholder="Leave empty for OpenAI")
            save_provider_btn = gr.Button("💾 Save Provider Settings", size="sm")
            provider_status = gr.Textbox(label="Status", interactive=False)

        # ====================================================================
        # Event Handlers
        # ====================================================================

        form = [
            title_input, role_input, task_input, audience_input, style_input, tone_input,
            constraints_input, steps_input, inputs_input, examples_input,
            temperature_slider, top_p_slider, max_tokens_slider, presence_slider, frequency_slider,
        ]

        for component in form:
            component.change(fn=ui.apply_form, inputs=form, outputs=[preview_box])

        format_radio.change(fn=ui.select_format, inputs=[format_radio], outputs=[preview_box])

        for button, handler in [
            (add_item_btn, ui.add_item_ui),
            (move_up_btn, ui.move_up_ui),
            (move_down_btn, ui.move_down_ui),
            (remove_item_btn, ui.remove_item_ui),
        ]:
            button.click(fn=handler, inputs=[list_field, list_position] + form, outputs=form + [preview_box])

        import_btn.click(fn=ui.import_ui, inputs=[import_file], outputs=form + [preview_box, status])
        export_btn.click(fn=ui.export_ui, inputs=form, outputs=[export_files, status])
        generate_btn.click(fn=ui.generate_ui, inputs=[format_radio] + form, outputs=[preview_box, status])

        save_btn.click(fn=ui.save_ui, inputs=[entry_title] + form, outputs=[library_dropdown, status])
        save_new_btn.click(fn=ui.save_as_new_ui, inputs=[entry_title] + form, outputs=[library_dropdown, status])
        load_btn.click(fn=ui.load_ui, inputs=[library_dropdown], outputs=form + [preview_box, entry_title, status])
        duplicate_btn.click(fn=ui.duplicate_ui, inputs=[library_dropdown], outputs=[library_dropdown, status])
        rename_btn.click(fn=ui.rename_ui, inputs=[library_dropdown, entry_title], outputs=[library_dropdown, status])
        delete_btn.click(fn=ui.delete_ui, inputs=[library_dropdown], outputs=[library_dropdown, status])
        new_btn.click(fn=ui.new_document_ui, outputs=form + [preview_box, entry_title, status])

        save_provider_btn.click(
            fn=ui.save_credentials_ui,
            inputs=[provider_dropdown, api_key_input, base_url_input, model_input],
            outputs=[provider_status],
        )

    return demo


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(description="Prompt Builder - structured prompt composer")
    parser.add_argument(
        "--port",
        type=int,
        default=7860,
        help="Port to run Gradio server (default: 7860)",
    )
    parser.add_argument(
        "--storage-dir",
        type=str,
        default=None,
        help="Directory for the prompt library and credentials (default: ~/.prompt-builder/storage)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_user_config()
    if args.storage_dir:
        config["storage_dir"] = args.storage_dir

    storage_dir = get_storage_dir(config)
    session = BuilderSession(storage=FileStorage(storage_dir), config=config)

    print("🧩 Prompt Builder")
    print(f"Library: {storage_dir}")
    print(f"Starting server on port {args.port}...")

    # Create and launch UI
    demo = create_ui(session)
    try:
        demo.launch(
            server_name="0.0.0.0",
            server_port=args.port,
            theme=gr.themes.Soft(),
        )
    finally:
        session.close()


if __name__ == "__main__":
    main()
