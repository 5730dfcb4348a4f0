"""Self-contained HTML document.

Everything the game needs is inline: the payload and the runtime wasm as
base64 globals, the runtime script and the bootstrap script as inline
``<script>`` blocks. Opening the file requires no further network fetches.
"""

import html
import re

_SCRIPT_CLOSE_RE = re.compile(r"</(script)", re.IGNORECASE)

_HEAD = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
"""

_STYLE = """<style>
html, body { margin: 0; padding: 0; width: 100%; height: 100%; background: #1e1e2e; overflow: hidden; }
#container { display: flex; justify-content: center; align-items: center; width: 100%; height: 100%; }
canvas { display: block; transform-origin: center center; }
#loading { color: #cdd6f4; font-family: sans-serif; font-size: 24px; text-align: center; }
</style>
</head>
<body>
<div id="container">
<div id="loading">Loading...</div>
<canvas id="canvas" oncontextmenu="event.preventDefault()" style="display:none;"></canvas>
</div>
"""

_HELPERS = """<script>
window.onerror = function(e) {
  document.getElementById('loading').innerHTML = 'Error: ' + e;
};
function decodeBase64(base64) {
  var binary = atob(base64);
  var bytes = new Uint8Array(binary.length);
  for (var i = 0; i < binary.length; i++) bytes[i] = binary.charCodeAt(i);
  return bytes;
}
function scaleCanvas() {
  var container = document.getElementById('container');
  var canvas = document.getElementById('canvas');
  var scale = Math.min(container.clientWidth / canvas.width, container.clientHeight / canvas.height, 1);
  canvas.style.transform = 'scale(' + scale + ')';
}
"""

_MODULE_TAIL = """  printErr: console.error.bind(console),
  setStatus: function(text) {
    if (text) document.getElementById('loading').textContent = text;
  },
  postRun: [function() {
    document.getElementById('loading').style.display = 'none';
    var canvas = document.getElementById('canvas');
    canvas.style.display = 'block';
    canvas.focus();
    scaleCanvas();
    window.addEventListener('resize', scaleCanvas);
    new ResizeObserver(scaleCanvas).observe(document.getElementById('container'));
  }]
};
</script>
"""

_START = """<script>
Promise.resolve(Love(Module)).catch(function(err) {
  document.getElementById('loading').innerHTML = 'Error: ' + err.message;
});
</script>
</body>
</html>
"""


def inline_script(source: str) -> str:
    """Escape ``</script`` so ``source`` can sit inside a script element."""
    return _SCRIPT_CLOSE_RE.sub(r"<\\/\1", source)


def single_document(
    *,
    title: str,
    memory: int,
    arguments_json: str,
    game_script: str,
    runtime_script: str,
    payload_b64: str,
    wasm_b64: str,
) -> str:
    """Build the single-file page.

    ``game_script`` must be rendered with an inline payload loader: it reads
    the ``GAME_DATA`` global defined here.
    """
    return (
        _HEAD
        + f"<title>{html.escape(title)}</title>\n"
        + _STYLE
        + "<script>\n"
        + f'var GAME_DATA = "{payload_b64}";\n'
        + f'var LOVE_WASM = "{wasm_b64}";\n'
        + "</script>\n"
        + _HELPERS
        + "var Module = {\n"
        + "  canvas: document.getElementById('canvas'),\n"
        + f"  arguments: {arguments_json},\n"
        + f"  INITIAL_MEMORY: {int(memory)},\n"
        + "  wasmBinary: decodeBase64(LOVE_WASM),\n"
        + _MODULE_TAIL
        + "<script>\n"
        + inline_script(game_script)
        + "</script>\n"
        + "<script>\n"
        + inline_script(runtime_script)
        + "\n</script>\n"
        + _START
    )
