"""Command-line and configuration-file options of the file server."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

import yaml

from dufs.http_logger import HttpLogger
from dufs.options import (
    DEFAULT_COMPRESS,
    DEFAULT_PORT,
    BindAddr,
    Compress,
    bind_addrs_from_config,
    default_addrs,
    encode_uri,
    string_or_list,
)

_PROG = "dufs"
_VERSION = "0.46.0"
_DESCRIPTION = "Dufs is a distinctive utility file server"

_FLAG_KEYS = {
    "allow-all": "allow_all",
    "allow-upload": "allow_upload",
    "allow-delete": "allow_delete",
    "allow-search": "allow_search",
    "allow-symlink": "allow_symlink",
    "allow-archive": "allow_archive",
    "allow-hash": "allow_hash",
    "render-index": "render_index",
    "render-spa": "render_spa",
    "render-try-index": "render_try_index",
    "enable-cors": "enable_cors",
}

_OPTIONAL_PATH_KEYS = {
    "assets": "assets",
    "error-page": "error_page",
    "log-file": "log_file",
    "tls-cert": "tls_cert",
    "tls-key": "tls_key",
}


@dataclass
class Args:
    """The fully resolved settings of a server run."""

    serve_path: Path = field(default_factory=lambda: Path("."))
    addrs: List[BindAddr] = field(default_factory=default_addrs)
    port: int = DEFAULT_PORT
    path_is_file: bool = False
    path_prefix: str = ""
    uri_prefix: str = ""
    hidden: List[str] = field(default_factory=list)
    auth: List[str] = field(default_factory=list)
    allow_all: bool = False
    allow_upload: bool = False
    allow_delete: bool = False
    allow_search: bool = False
    allow_symlink: bool = False
    allow_archive: bool = False
    allow_hash: bool = False
    render_index: bool = False
    render_spa: bool = False
    render_try_index: bool = False
    enable_cors: bool = False
    assets: Optional[Path] = None
    error_page: Optional[Path] = None
    http_logger: HttpLogger = field(default_factory=HttpLogger)
    log_file: Optional[Path] = None
    compress: Compress = DEFAULT_COMPRESS
    tls_cert: Optional[Path] = None
    tls_key: Optional[Path] = None

    @classmethod
    def from_config(cls, mapping: Optional[Mapping]) -> "Args":
        """Build settings from a parsed configuration document with kebab-case keys."""
        args = cls()
        if mapping is None:
            return args
        if not isinstance(mapping, Mapping):
            raise ValueError("configuration must be a mapping")
        for key, value in mapping.items():
            try:
                _apply_config_value(args, key, value)
            except (TypeError, ValueError) as err:
                raise ValueError(f"Invalid value for `{key}`: {err}") from err
        return args


def _apply_config_value(args: Args, key: str, value) -> None:
    if key in _FLAG_KEYS:
        if not isinstance(value, bool):
            raise TypeError("expected a boolean")
        setattr(args, _FLAG_KEYS[key], value)
    elif key in _OPTIONAL_PATH_KEYS:
        if value is None:
            setattr(args, _OPTIONAL_PATH_KEYS[key], None)
        elif isinstance(value, str):
            setattr(args, _OPTIONAL_PATH_KEYS[key], Path(value))
        else:
            raise TypeError("expected a path")
    elif key == "serve-path":
        if not isinstance(value, str):
            raise TypeError("expected a path")
        args.serve_path = Path(value)
    elif key == "bind":
        args.addrs = bind_addrs_from_config(value)
    elif key == "port":
        args.port = _check_port(value)
    elif key == "path-prefix":
        if not isinstance(value, str):
            raise TypeError("expected a string")
        args.path_prefix = value
    elif key == "hidden":
        args.hidden = string_or_list(value)
    elif key == "auth":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise TypeError("expected a list of strings")
        args.auth = list(value)
    elif key == "log-format":
        if not isinstance(value, str):
            raise TypeError("expected a string")
        args.http_logger = HttpLogger.parse(value)
    elif key == "compress":
        if not isinstance(value, str):
            raise TypeError("expected a string")
        args.compress = Compress(value)


def _check_port(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("expected an integer")
    if not 0 <= value <= 65535:
        raise ValueError(f"{value} is not in 0..=65535")
    return value


def _port_arg(text: str) -> int:
    try:
        return _check_port(int(text))
    except (TypeError, ValueError) as err:
        raise argparse.ArgumentTypeError(f"invalid port `{text}`") from err


def build_parser() -> argparse.ArgumentParser:
    """The command-line parser; environment variables are merged by parse_args."""
    parser = argparse.ArgumentParser(prog=_PROG, description=_DESCRIPTION)
    parser.add_argument("-V", "--version", action="version", version=f"{_PROG} {_VERSION}")
    parser.add_argument("serve_path", nargs="?", metavar="serve-path",
                        help="Specific path to serve [default: .]")
    parser.add_argument("-c", "--config", metavar="file", help="Specify configuration file")
    parser.add_argument("-b", "--bind", action="append", metavar="addrs",
                        help="Specify bind address or unix socket")
    parser.add_argument("-p", "--port", type=_port_arg, metavar="port",
                        help="Specify port to listen on [default: 5000]")
    parser.add_argument("--path-prefix", metavar="path", help="Specify a path prefix")
    parser.add_argument("--hidden", action="append", metavar="value",
                        help="Hide paths from directory listings, e.g. tmp,*.log,*.lock")
    parser.add_argument("-a", "--auth", action="append", metavar="rules",
                        help="Add auth roles, e.g. user:pass@/dir1:rw,/dir2")
    parser.add_argument("--auth-method", choices=["basic", "digest"], default="digest",
                        help=argparse.SUPPRESS)
    parser.add_argument("-A", "--allow-all", action="store_true", help="Allow all operations")
    parser.add_argument("--allow-upload", action="store_true", help="Allow upload files/folders")
    parser.add_argument("--allow-delete", action="store_true", help="Allow delete files/folders")
    parser.add_argument("--allow-search", action="store_true", help="Allow search files/folders")
    parser.add_argument("--allow-symlink", action="store_true",
                        help="Allow symlink to files/folders outside root directory")
    parser.add_argument("--allow-archive", action="store_true",
                        help="Allow download folders as archive file")
    parser.add_argument("--allow-hash", action="store_true",
                        help="Allow ?hash query to get file sha256 hash")
    parser.add_argument("--enable-cors", action="store_true",
                        help="Enable CORS, sets `Access-Control-Allow-Origin: *`")
    parser.add_argument("--render-index", action="store_true",
                        help="Serve index.html when requesting a directory, "
                             "returns 404 if not found index.html")
    parser.add_argument("--render-try-index", action="store_true",
                        help="Serve index.html when requesting a directory, "
                             "returns directory listing if not found index.html")
    parser.add_argument("--render-spa", action="store_true",
                        help="Serve SPA(Single Page Application)")
    parser.add_argument("--assets", metavar="path",
                        help="Set the path to the assets directory for overriding the built-in assets")
    parser.add_argument("--log-format", metavar="format", help="Customize http log format")
    parser.add_argument("--log-file", metavar="file",
                        help="Specify the file to save logs to, other than stdout/stderr")
    parser.add_argument("--compress", choices=[c.value for c in Compress], metavar="level",
                        help="Set zip compress level [default: low]")
    parser.add_argument("--tls-cert", metavar="path",
                        help="Path to an SSL/TLS certificate to serve with HTTPS")
    parser.add_argument("--tls-key", metavar="path",
                        help="Path to the SSL/TLS certificate's private key")
    return parser


class _Sources:
    """Command-line values with environment-variable fallbacks."""

    def __init__(self, namespace: argparse.Namespace, environ: Mapping[str, str]) -> None:
        self._ns = namespace
        self._environ = environ

    def _env(self, dest: str) -> Optional[str]:
        raw = self._environ.get(f"DUFS_{dest.upper()}")
        return raw if raw else None

    def value(self, dest: str) -> Optional[str]:
        given = getattr(self._ns, dest)
        return given if given is not None else self._env(dest)

    def values(self, dest: str, delimited: bool) -> Optional[List[str]]:
        given = getattr(self._ns, dest)
        if given is None:
            raw = self._env(dest)
            if raw is None:
                return None
            given = [raw]
        if delimited:
            return [part for item in given for part in item.split(",")]
        return list(given)

    def flag(self, dest: str) -> bool:
        if getattr(self._ns, dest):
            return True
        raw = self._env(dest)
        if raw is None:
            return False
        if raw == "true":
            return True
        if raw == "false":
            return False
        raise ValueError(f"Invalid value '{raw}' for `DUFS_{dest.upper()}`")


def _load_config(config_path: str) -> Args:
    try:
        contents = Path(config_path).read_text(encoding="utf-8")
    except OSError as err:
        raise OSError(f"Failed to read config at {config_path}") from err
    try:
        document = yaml.safe_load(contents)
        return Args.from_config(document)
    except (yaml.YAMLError, ValueError) as err:
        raise ValueError(f"Failed to load config at {config_path}: {err}") from err


def parse_args(argv: Optional[Sequence[str]] = None,
               environ: Optional[Mapping[str, str]] = None) -> Args:
    """Resolve settings from the command line, environment and optional config file."""
    if environ is None:
        environ = os.environ
    src = _Sources(build_parser().parse_args(argv), environ)

    config_path = src.value("config")
    args = _load_config(config_path) if config_path is not None else Args()

    serve_path = src.value("serve_path")
    if serve_path is not None:
        args.serve_path = Path(serve_path)
    args.serve_path = sanitize_path(args.serve_path)

    port = src.value("port")
    if port is not None:
        args.port = port if isinstance(port, int) else _env_port(port)

    bind = src.values("bind", delimited=True)
    if bind is not None:
        args.addrs = BindAddr.parse_addrs(bind)

    args.path_is_file = args.serve_path.is_file()
    path_prefix = src.value("path_prefix")
    if path_prefix is not None:
        args.path_prefix = path_prefix
    args.path_prefix = args.path_prefix.strip("/")
    args.uri_prefix = f"/{encode_uri(args.path_prefix)}/" if args.path_prefix else "/"

    hidden = src.values("hidden", delimited=True)
    if hidden is not None:
        args.hidden = hidden
    else:
        args.hidden = [part for value in args.hidden for part in value.split(",")]

    args.enable_cors = args.enable_cors or src.flag("enable_cors")

    auth = src.values("auth", delimited=False)
    if auth is not None:
        args.auth = auth

    args.allow_all = args.allow_all or src.flag("allow_all")
    for name in ("allow_upload", "allow_delete", "allow_search",
                 "allow_symlink", "allow_hash", "allow_archive"):
        if not getattr(args, name):
            setattr(args, name, args.allow_all or src.flag(name))
    for name in ("render_index", "render_try_index", "render_spa"):
        if not getattr(args, name):
            setattr(args, name, src.flag(name))

    assets = src.value("assets")
    if assets is not None:
        args.assets = Path(assets)
    if args.assets is not None:
        args.assets = sanitize_assets_path(args.assets)
        error_page = args.assets / "404.html"
        if error_page.exists():
            args.error_page = error_page

    log_format = src.value("log_format")
    if log_format is not None:
        args.http_logger = HttpLogger.parse(log_format)

    log_file = src.value("log_file")
    if log_file is not None:
        args.log_file = Path(log_file)

    compress = src.value("compress")
    if compress is not None:
        try:
            args.compress = Compress(compress)
        except ValueError as err:
            raise ValueError(f"Invalid compress level `{compress}`") from err

    tls_cert = src.value("tls_cert")
    if tls_cert is not None:
        args.tls_cert = Path(tls_cert)
    tls_key = src.value("tls_key")
    if tls_key is not None:
        args.tls_key = Path(tls_key)
    if args.tls_cert is not None and args.tls_key is None:
        raise ValueError("No tls-key set")
    if args.tls_key is not None and args.tls_cert is None:
        raise ValueError("No tls-cert set")

    return args


def _env_port(raw: str) -> int:
    try:
        return _check_port(int(raw))
    except (TypeError, ValueError) as err:
        raise ValueError(f"Invalid port `{raw}`") from err


def sanitize_path(path) -> Path:
    """Resolve an existing path against the current directory to its canonical form."""
    path = Path(path)
    if not path.exists():
        raise ValueError(f"Path `{path}` doesn't exist")
    try:
        return (Path.cwd() / path).resolve(strict=True)
    except OSError as err:
        raise ValueError(f"Failed to access path `{path}`") from err


def sanitize_assets_path(path) -> Path:
    """Resolve an assets directory, which must contain index.html."""
    resolved = sanitize_path(path)
    if not (resolved / "index.html").exists():
        raise ValueError(f"Path `{resolved}` doesn't contains index.html")
    return resolved