"""Virtual filesystem bootstrap script (``game.js``).

The script runs before the love.js runtime starts. It registers a preRun
hook that creates every directory of the game tree, then carves the
payload into files using the manifest byte ranges. The payload is either
fetched from the sibling ``game.data`` file or decoded from the
``GAME_DATA`` base64 global defined by a single-document page.
"""

_PRELUDE = """var Module;
if (typeof Module === 'undefined') Module = {};
if (!Module.expectedDataFileDownloads) {
  Module.expectedDataFileDownloads = 0;
  Module.finishedDataFileDownloads = 0;
}
Module.expectedDataFileDownloads++;
(function() {
  var loadPackage = function(metadata) {
    var PACKAGE_NAME = 'game.data';
    var REMOTE_PACKAGE_NAME = Module['locateFile'] ? Module['locateFile'](PACKAGE_NAME, '') : PACKAGE_NAME;
    var REMOTE_PACKAGE_SIZE = metadata.remote_package_size;
    var PACKAGE_UUID = metadata.package_uuid;
    var fetchedCallback = null;
    var fetched = null;
"""

_REMOTE_FETCH = """
    function fetchRemotePackage(packageName, packageSize, callback, errback) {
      var xhr = new XMLHttpRequest();
      xhr.open('GET', packageName, true);
      xhr.responseType = 'arraybuffer';
      xhr.onprogress = function(event) {
        var size = event.total || packageSize;
        if (Module['setStatus']) Module['setStatus']('Downloading data... (' + event.loaded + '/' + size + ')');
      };
      xhr.onerror = function(event) {
        errback(new Error('NetworkError for: ' + packageName));
      };
      xhr.onload = function(event) {
        if (xhr.status == 200 || xhr.status == 304 || xhr.status == 206 || (xhr.status == 0 && xhr.response)) {
          callback(xhr.response);
        } else {
          errback(new Error(xhr.statusText + ' : ' + xhr.responseURL));
        }
      };
      xhr.send(null);
    }

    fetchRemotePackage(REMOTE_PACKAGE_NAME, REMOTE_PACKAGE_SIZE, function(data) {
      if (fetchedCallback) {
        fetchedCallback(data);
        fetchedCallback = null;
      } else {
        fetched = data;
      }
    }, function(error) {
      console.error('package error:', error);
    });
"""

_INLINE_FETCH = """
    fetched = (function(encoded) {
      var binary = atob(encoded);
      var bytes = new Uint8Array(binary.length);
      for (var i = 0; i < binary.length; i++) bytes[i] = binary.charCodeAt(i);
      return bytes.buffer;
    })(GAME_DATA);
"""

_RUN_WITH_FS_OPEN = """
    function runWithFS() {
"""

_RUN_WITH_FS_BODY = """
      function DataRequest(start, end, crunched, audio) {
        this.start = start;
        this.end = end;
        this.crunched = crunched;
        this.audio = audio;
      }
      DataRequest.prototype = {
        requests: {},
        open: function(mode, name) {
          this.name = name;
          this.requests[name] = this;
          Module['addRunDependency']('fp ' + this.name);
        },
        send: function() {},
        onload: function() {
          var byteArray = this.byteArray.subarray(this.start, this.end);
          this.finish(byteArray);
        },
        finish: function(byteArray) {
          var that = this;
          Module['FS_createDataFile'](this.name, null, byteArray, true, true, true);
          Module['removeRunDependency']('fp ' + that.name);
          this.requests[this.name] = null;
        }
      };

      var files = metadata.files;
      for (var i = 0; i < files.length; ++i) {
        new DataRequest(files[i].start, files[i].end, files[i].crunched, files[i].audio).open('GET', files[i].filename);
      }

      function processPackageData(arrayBuffer) {
        Module.finishedDataFileDownloads++;
        var byteArray = new Uint8Array(arrayBuffer);
        DataRequest.prototype.byteArray = byteArray;
        var files = metadata.files;
        for (var i = 0; i < files.length; ++i) {
          DataRequest.prototype.requests[files[i].filename].onload();
        }
        Module['removeRunDependency']('datafile_game.data');
      }
      Module['addRunDependency']('datafile_game.data');

      if (!Module.preloadResults) Module.preloadResults = {};
      Module.preloadResults[PACKAGE_NAME] = {fromCache: false};
      if (fetched) {
        processPackageData(fetched);
        fetched = null;
      } else {
        fetchedCallback = processPackageData;
      }
    }

    if (Module['calledRun']) {
      runWithFS();
    } else {
      if (!Module['preRun']) Module['preRun'] = [];
      Module['preRun'].push(runWithFS);
    }
  };
"""


def game_script(create_file_paths: list[str], metadata_json: str, *, inline_payload: bool) -> str:
    """Build the bootstrap script.

    Args:
        create_file_paths: ``Module['FS_createPath'](...)`` statements, in order.
        metadata_json: JSON object with package_uuid, remote_package_size, files.
        inline_payload: Decode ``GAME_DATA`` instead of fetching ``game.data``.
    """
    paths = "".join(f"      {line}\n" for line in create_file_paths)
    fetch = _INLINE_FETCH if inline_payload else _REMOTE_FETCH
    return (
        _PRELUDE
        + fetch
        + _RUN_WITH_FS_OPEN
        + paths
        + _RUN_WITH_FS_BODY
        + f"  loadPackage({metadata_json});\n"
        + "})();\n"
    )
