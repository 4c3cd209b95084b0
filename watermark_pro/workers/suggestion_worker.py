"""
Suggestion Worker - Async AI Text Suggestions
=============================================
Runs one SuggestionClient request off the UI thread.

Only one request is ever outstanding: the UI disables the trigger while
a worker is running. There is no cancellation; a stale result is simply
ignored by the caller.
"""

from PIL import Image
from PyQt6.QtCore import QThread, pyqtSignal

from ..core.suggestions import SuggestionClient
from ..i18n import Language


class SuggestionWorker(QThread):
    """
    Worker thread for fetching watermark text suggestions.

    Signals:
        suggestions_ready(list[str]): Always emitted, with the fallback
                                      list if the request failed
    """

    suggestions_ready = pyqtSignal(list)

    def __init__(self, client: SuggestionClient, image: Image.Image,
                 language: Language = Language.EN, parent=None):
        super().__init__(parent)
        self._client = client
        self._image = image
        self._language = language

    def run(self):
        # SuggestionClient.suggest never raises
        self.suggestions_ready.emit(self._client.suggest(self._image, self._language))
