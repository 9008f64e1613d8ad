# dufs

Building blocks for a small utility file server: command-line and
configuration-file options, an nginx-style access log, line logging,
a plain HTML directory listing for text-mode clients, length-limited
chunked reading, and helpers for choosing, opening and announcing the
addresses to listen on.

## Options (`dufs.args`, `dufs.options`)

`parse_args(argv, environ)` reads command-line arguments, the `DUFS_*`
environment variables (for example `DUFS_PORT`, `DUFS_HIDDEN`,
`DUFS_ALLOW_UPLOAD=true`) and an optional YAML configuration file
(`-c/--config`) into an `Args` dataclass. Command-line and environment
values win over the configuration file; anything unset falls back to the
defaults: serve `.`, bind `0.0.0.0` and `::`, port `5000`, compress `low`.

```python
from dufs.args import parse_args

args = parse_args(["--hidden", "tmp,*.log,*.lock", "-p", "3000", "."], {})
print(args.port)        # 3000
print(args.hidden)      # ['tmp', '*.log', '*.lock']
print(args.uri_prefix)  # '/'
```

The serve path and `--assets` directory are resolved to canonical
absolute paths with `sanitize_path` and `sanitize_assets_path`; a missing
path, or an assets directory without `index.html`, raises `ValueError`.
When the assets directory holds `404.html`, it becomes `Args.error_page`.
`-A/--allow-all` turns on every `allow_*` option. `--path-prefix` is
stripped of slashes and gives `uri_prefix`, e.g. `/xyz/`.

A configuration file uses the same names as the long options and is read
by `Args.from_config`:

```yaml
serve-path: /srv/share
bind:
  - 127.0.0.1
  - 192.168.8.10
port: 3000
allow-upload: true
hidden:
  - tmp
  - '*.log'
```

`bind` and `hidden` take a string or a list of strings
(`string_or_list`, `bind_addrs_from_config`). Bind addresses that are not
IP addresses are taken as Unix socket paths by `BindAddr.parse_addrs`; on
Windows they raise `ValueError`. `--tls-cert` and `--tls-key` must be
given together. `--compress` takes `none`, `low`, `medium` or `high`
(`Compress`), and `Compress.to_compression()` maps these to the
`zipfile` methods stored, deflate, bzip2 and LZMA. `encode_uri`
percent-encodes each path segment and keeps the slashes.

## Access log (`dufs.http_logger`)

`HttpLogger.parse` turns a format string into a logger. Variables start
with `$`; `$http_<name>` reads a request header, with underscores turned
into dashes. The default format is

```
$time_iso8601 $log_level - $remote_addr "$request" $status
```

and an empty format switches request logging off (`render` returns
`None`, `log` does nothing).

```python
from dufs.http_logger import HttpLogger

logger = HttpLogger.parse('$remote_addr "$request" $http_user_agent')
data = logger.data("GET", "/dir%201/", {"user-agent": "curl/8.0"})
data["remote_addr"] = "127.0.0.1"
print(logger.render(data, None))   # 127.0.0.1 "GET /dir 1/" curl/8.0
```

`data` fills `request`, `request_method`, `request_uri`, the user name of
a Basic or Digest `Authorization` header as `remote_user`, and the
requested headers. `$time_local`, `$time_iso8601`, `$msec` and
`$log_level` are filled at render time; anything missing prints as `-`.
An error message is appended to the line and raises the level to ERROR.
Values taken from the request are escaped with `sanitize_log_value`, so
quotes, backslashes and control characters cannot break a log line.
`log` emits the line on the `http_access` logger.

## Line logging (`dufs.logger`)

`init_logging(log_file)` installs a `LineHandler` on the root logger at
INFO level. It writes each message as a bare line, appending to the file
when one is given, otherwise sending warnings and errors to standard
error and the rest to standard output.

## Listing for text-mode browsers (`dufs.noscript`)

`detect_noscript` recognises clients such as curl, wget, lynx and w3m by
their User-Agent; `generate_noscript_html(href, entries, max_subpaths)`
builds a plain HTML table of `PathEntry` items.

```python
from dufs.noscript import detect_noscript, format_mtime, format_size

detect_noscript("curl/8.0")       # True
format_mtime(0)                   # '1970-01-01T00:00:00.000Z'
format_size(1024, False, 1000)    # '1.00 KB'
format_size(1000, True, 1000)     # '>999 items'
```

## Chunked reading (`dufs.streams`)

`length_limited_chunks(reader, limit, chunk_size)` yields chunks from a
binary file object until `limit` bytes have been read or the stream ends.

## Listening (`dufs.listen`)

`interface_addrs()` returns the IPv4 and IPv6 addresses of the local
interfaces. `check_addrs(addrs, ipv4_addrs, ipv6_addrs)` drops bind
addresses whose family has no interface and returns, sorted, the
addresses to announce, expanding an unspecified address into every
interface address of its family. `print_listening(addrs, port,
uri_prefix, tls)` builds the "Listening on" banner, and
`create_listener(ip, port)` opens a non-blocking, address-reusing TCP
socket (IPv6-only for IPv6 addresses).

## What this package does not do

There is no HTTP server here: nothing answers requests, serves or uploads
files, builds archives, renders the JavaScript index page or speaks
WebDAV, and no command is installed. Authentication rules given with
`-a/--auth` are kept as plain strings in `Args.auth` and are not checked.
TLS certificate and key paths are only recorded, not loaded.