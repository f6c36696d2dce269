"""
Editing session.

A ``BuilderSession`` owns everything one editor works with: the document,
the id of the library entry it was loaded from, the selected preview format,
the generation overlay and the provider credentials.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .config import (
    CredentialStore,
    get_default_user_config,
    get_generation_timeout,
    get_model,
)
from .document import PromptDocument, apply_imported_shape
from .errors import MissingCredentialError
from .formats import FORMATS, get_format, import_json, render
from .library import LibraryEntry, LibraryStore
from .llm import generate_text
from .overlay import Generator, GenerationOverlay
from .storage import MemoryStorage, Storage

logger = logging.getLogger(__name__)

UNTITLED = "Untitled prompt"


@dataclass
class ExportArtifact:
    """A rendered document ready to be written to disk."""
    filename: str
    text: str


class BuilderSession:
    """Controller for a single editing session."""

    def __init__(
        self,
        storage: Optional[Storage] = None,
        config: Optional[Dict[str, Any]] = None,
        generator: Optional[Generator] = None,
        library: Optional[LibraryStore] = None,
    ):
        """
        Initialize the session.

        Args:
            storage: Storage for the library and credentials (in-memory if omitted)
            config: User configuration (defaults if omitted)
            generator: Replaces the OpenAI-backed generator, mainly for tests
            library: Prebuilt library store (built on ``storage`` if omitted)
        """
        self.config = config if config is not None else get_default_user_config()
        self.storage = storage if storage is not None else MemoryStorage()
        self.library = library if library is not None else LibraryStore(self.storage)
        self.credentials = CredentialStore(self.storage, self.config)
        self.overlay = GenerationOverlay(timeout=get_generation_timeout(self.config))
        self.document = PromptDocument()
        self.editing_id: Optional[str] = None
        self.active_format = "markdown"
        self._generator = generator

    def __enter__(self) -> "BuilderSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        """Drop the overlay cache and editing state."""
        self.overlay.clear()
        self.editing_id = None
        self.document = PromptDocument()

    @property
    def provider(self) -> str:
        return self.config.get("provider", "openai")

    # ------------------------------------------------------------------
    # Document and previews
    # ------------------------------------------------------------------

    def new_document(self):
        self.document = PromptDocument()
        self.editing_id = None

    def select_format(self, format_key: str):
        get_format(format_key)
        self.active_format = format_key

    def preview(self, format_key: Optional[str] = None) -> str:
        """Text shown for a format: its overlay if one exists, else the live rendering."""
        return self.overlay.preview(format_key or self.active_format, self.document)

    def copy_preview(self) -> str:
        """Text of the currently selected preview."""
        return self.preview(self.active_format)

    def export(self, format_key: str) -> ExportArtifact:
        """Render a format as a downloadable artifact."""
        output_format = get_format(format_key)
        return ExportArtifact(output_format.filename, render(format_key, self.document))

    def export_all(self) -> List[ExportArtifact]:
        return [self.export(key) for key in FORMATS]

    def import_json(self, text: Union[str, bytes]):
        """
        Replace the document with an imported JSON prompt.

        The document is only swapped after the text parsed, so a failed
        import leaves the session untouched.

        Raises:
            ImportParseError: If the text is not a JSON prompt object
        """
        document = import_json(text)
        self.document = document
        self.editing_id = None
        logger.info("Imported document from JSON")

    # ------------------------------------------------------------------
    # Library
    # ------------------------------------------------------------------

    def list_entries(self) -> List[LibraryEntry]:
        return self.library.list_entries()

    def save(self, title: Optional[str] = None) -> str:
        """
        Save the document to the library.

        Updates the entry being edited when there is one, otherwise creates a
        new entry and starts editing it.
        """
        title = (title or self.document.title).strip() or UNTITLED
        snapshot = self.document.to_snapshot()

        if self.editing_id and self.library.update(self.editing_id, snapshot, title):
            return self.editing_id

        self.editing_id = self.library.create(snapshot, title)
        return self.editing_id

    def save_as_new(self, title: Optional[str] = None) -> str:
        self.editing_id = None
        return self.save(title)

    def load(self, entry_id: str) -> bool:
        """Load an entry into the editor. Returns False for unknown ids."""
        entry = self.library.get(entry_id)
        if entry is None:
            return False

        self.document = apply_imported_shape(entry.data)
        self.editing_id = entry.id
        return True

    def duplicate(self, entry_id: str) -> Optional[str]:
        return self.library.duplicate(entry_id)

    def rename(self, entry_id: str, title: str) -> bool:
        return self.library.rename(entry_id, title)

    def delete(self, entry_id: str) -> bool:
        """Delete an entry, forgetting it as the edit target if it was one."""
        deleted = self.library.delete(entry_id)
        if entry_id == self.editing_id:
            self.editing_id = None
        return deleted

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _build_generator(self) -> Generator:
        if self._generator is not None:
            return self._generator

        api_key, base_url = self.credentials.resolve(self.provider)
        return functools.partial(
            generate_text,
            api_key=api_key,
            base_url=base_url,
            timeout=self.overlay.timeout,
        )

    async def generate(self, format_key: Optional[str] = None) -> str:
        """
        Refine the selected format with the configured provider.

        On success the overlay for that format is replaced and the format
        becomes the active preview. On failure nothing is stored.

        Raises:
            MissingCredentialError: If the provider has no credential
            BusyError: If a request is already in flight
            ProviderError: If the provider rejected the request
            GenerationTimeoutError: If the provider did not answer in time
        """
        format_key = format_key or self.active_format
        get_format(format_key)

        if not self.credentials.is_configured(self.provider):
            raise MissingCredentialError(
                f"No API key or base URL configured for provider '{self.provider}'"
            )

        text = await self.overlay.request(
            format_key,
            self.document,
            self._build_generator(),
            model=get_model(self.config),
        )
        self.active_format = format_key
        return text
