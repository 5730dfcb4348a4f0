"""Output templates for rendered bundles.

Public API:
    game_script(create_file_paths, metadata_json, inline_payload) -> str
    index_html(title, memory, arguments_json, threaded) -> str
    single_document(...) -> str
"""

from lovepack.packaging.templates.game_js import game_script
from lovepack.packaging.templates.index_html import index_html
from lovepack.packaging.templates.single_document import inline_script, single_document

__all__ = ["game_script", "index_html", "inline_script", "single_document"]
