import hashlib
import html
import pathlib
import tempfile
import webbrowser
from dataclasses import dataclass
from typing import Callable, Protocol, Tuple, Union


ARTIFACT_NAME = "index.html"
ARTIFACT_MIME = "text/html"


class Clipboard(Protocol):
    def write_text(self, text: str) -> None: ...


@dataclass(frozen=True)
class Artifact:
    """The single HTML document produced by one successful generation."""

    content: str

    @property
    def name(self) -> str:
        return ARTIFACT_NAME

    def render_preview(self, title: str = "Website Preview") -> str:
        # Isolated surface: scripts may run, but no same-origin access to the host page
        return (
            f'<iframe srcdoc="{html.escape(self.content, quote=True)}" '
            f'title="{html.escape(title, quote=True)}" '
            'sandbox="allow-scripts" class="w-full h-full border-0"></iframe>'
        )

    def download_payload(self) -> Tuple[str, str, bytes]:
        return ARTIFACT_NAME, ARTIFACT_MIME, self.content.encode("utf-8")

    def download(self, directory: Union[str, pathlib.Path]) -> pathlib.Path:
        target = pathlib.Path(directory) / ARTIFACT_NAME
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.content, encoding="utf-8")
        return target

    def copy_to_clipboard(self, clipboard: Clipboard) -> None:
        clipboard.write_text(self.content)

    def preview_path(self) -> pathlib.Path:
        # One file per distinct document; reopening overwrites it instead of piling up copies
        digest = hashlib.sha1(self.content.encode("utf-8")).hexdigest()[:16]
        return pathlib.Path(tempfile.gettempdir()) / f"sark-preview-{digest}.html"

    def open_in_new_surface(self, opener: Callable[[str], object] = webbrowser.open) -> pathlib.Path:
        path = self.preview_path()
        path.write_text(self.content, encoding="utf-8")
        opener(path.as_uri())
        return path
