"""HTML shell for directory-tree output.

References the sibling ``game.js``, ``love.js`` and ``theme/love.css`` files
written by the artifact emitter.
"""

import html

_HEAD = """<!doctype html>
<html lang="en-us">
  <head>
    <meta charset="utf-8">
    <meta http-equiv="Content-Type" content="text/html; charset=utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
"""

_BODY_OPEN = """    <link rel="stylesheet" type="text/css" href="theme/love.css">
  </head>
  <body>
    <center>
      <div>
        <canvas id="loadingCanvas" oncontextmenu="event.preventDefault()" width="800" height="600"></canvas>
        <canvas id="canvas" oncontextmenu="event.preventDefault()"></canvas>
      </div>
    </center>

    <script type="text/javascript">
      var loadingContext = document.getElementById('loadingCanvas').getContext('2d');
      function drawLoadingText(text) {
        var canvas = loadingContext.canvas;
        loadingContext.fillStyle = 'rgb(142, 195, 227)';
        loadingContext.fillRect(0, 0, canvas.scrollWidth, canvas.scrollHeight);
        loadingContext.font = '2em arial';
        loadingContext.textAlign = 'center';
        loadingContext.fillStyle = 'rgb(11, 86, 117)';
        loadingContext.fillText(text, canvas.scrollWidth / 2, canvas.scrollHeight / 2);
      }

      window.onload = function () { window.focus(); };
      window.onclick = function () { window.focus(); };
      window.addEventListener('keydown', function(e) {
        if ([32, 37, 38, 39, 40].indexOf(e.keyCode) > -1) e.preventDefault();
      }, false);

"""

_MODULE_TAIL = """        printErr: console.error.bind(console),
        canvas: (function() {
          var canvas = document.getElementById('canvas');
          canvas.addEventListener('webglcontextlost', function(e) {
            alert('WebGL context lost. You will need to reload the page.');
            e.preventDefault();
          }, false);
          return canvas;
        })(),
        setStatus: function(text) {
          if (text) {
            drawLoadingText(text);
          } else if (Module.remainingDependencies === 0) {
            document.getElementById('loadingCanvas').style.display = 'none';
            document.getElementById('canvas').style.visibility = 'visible';
          }
        },
        totalDependencies: 0,
        remainingDependencies: 0,
        monitorRunDependencies: function(left) {
          this.remainingDependencies = left;
          this.totalDependencies = Math.max(this.totalDependencies, left);
          Module.setStatus(left ? 'Preparing... (' + (this.totalDependencies - left) + '/' + this.totalDependencies + ')' : 'All downloads complete.');
        }
      };
      Module.setStatus('Downloading...');
      window.onerror = function(event) {
        Module.setStatus('Exception thrown, see JavaScript console');
        Module.setStatus = function(text) {
          if (text) Module.printErr('[post-exception status] ' + text);
        };
      };
"""

_RELEASE_CHECK = """      if (!window.crossOriginIsolated) {
        Module.setStatus('This build needs cross-origin isolation (COOP/COEP headers).');
      }
"""

_SCRIPTS = """      var applicationLoad = function(e) {
        Love(Module);
      };
    </script>
    <script type="text/javascript" src="game.js"></script>
    <script async type="text/javascript" src="love.js" onload="applicationLoad(this)"></script>
  </body>
</html>
"""


def index_html(title: str, memory: int, arguments_json: str, *, threaded: bool) -> str:
    """Build the page that boots a directory-tree bundle.

    Args:
        title: Page title; HTML-escaped here.
        memory: Initial WebAssembly memory in bytes.
        arguments_json: JSON array passed to the runtime as argv.
        threaded: True for the release (worker-based) runtime build.
    """
    return (
        _HEAD
        + f"    <title>{html.escape(title)}</title>\n"
        + _BODY_OPEN
        + "      var Module = {\n"
        + f"        arguments: {arguments_json},\n"
        + f"        INITIAL_MEMORY: {int(memory)},\n"
        + _MODULE_TAIL
        + (_RELEASE_CHECK if threaded else "")
        + _SCRIPTS
    )
