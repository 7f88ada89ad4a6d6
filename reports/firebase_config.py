"""
Load the Firebase web configuration from disk and build a Firestore client.

The client apps keep their configuration in ``firebaseConfig.ts`` as

    const firebaseConfig = {
        apiKey: "...",
        projectId: "...",
        ...
    };

The object literal is extracted and parsed as data; nothing in the file is
executed. A plain ``.json`` file holding the same object is accepted too.
"""

import ast
import json
import logging
import os
import re
from pathlib import Path

import firebase_admin
from firebase_admin import firestore

from errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.environ.get('FIREBASE_CONFIG', './firebaseConfig.ts')

_CONFIG_RE = re.compile(r'const\s+firebaseConfig\s*=\s*({[\s\S]*?});')

_TOKEN_RE = re.compile(r'''
    (?P<string>"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')
  | (?P<comment>//[^\n]*|/\*[\s\S]*?\*/)
  | (?P<number>-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)
  | (?P<ident>[A-Za-z_$][\w$]*)
  | (?P<punct>[{}\[\]:,])
  | (?P<space>\s+)
  | (?P<other>.)
''', re.VERBOSE)

_JS_LITERALS = {'true': 'true', 'false': 'false', 'null': 'null', 'undefined': 'null'}


def _unquote(token):
    # Python string literals share the JS escapes used in config files
    try:
        return ast.literal_eval(token)
    except (SyntaxError, ValueError) as e:
        raise ConfigError(f'Could not parse string {token} in firebaseConfig.') from e


def _tokens(literal):
    for match in _TOKEN_RE.finditer(literal):
        kind = match.lastgroup
        if kind in ('space', 'comment'):
            continue
        yield kind, match.group()


def parse_config_literal(literal):
    """Parse a JS object literal holding plain data into a dict."""
    tokens = list(_tokens(literal))
    parts = []
    for i, (kind, text) in enumerate(tokens):
        nxt = tokens[i + 1] if i + 1 < len(tokens) else (None, None)
        if kind == 'string':
            parts.append(json.dumps(_unquote(text)))
        elif kind == 'number':
            parts.append(text)
        elif kind == 'ident':
            if nxt[1] == ':':
                parts.append(json.dumps(text))
            elif text in _JS_LITERALS:
                parts.append(_JS_LITERALS[text])
            else:
                raise ConfigError(f'Unsupported expression {text!r} in firebaseConfig; only plain values are allowed.')
        elif kind == 'punct':
            # drop trailing commas
            if text == ',' and nxt[1] in ('}', ']'):
                continue
            parts.append(text)
        else:
            raise ConfigError(f'Unexpected character {text!r} in firebaseConfig.')
    try:
        config = json.loads(''.join(parts))
    except json.JSONDecodeError as e:
        raise ConfigError(f'Could not parse firebaseConfig object literal: {e}') from e
    if not isinstance(config, dict):
        raise ConfigError('firebaseConfig is not an object.')
    return config


def read_firebase_config(config_path=DEFAULT_CONFIG_PATH):
    """Read and validate the Firebase config stored at ``config_path``."""
    full = Path(config_path).resolve()
    try:
        code = full.read_text(encoding='utf-8')
    except OSError as e:
        raise ConfigError(f'Could not read {config_path}: {e}') from e

    if full.suffix == '.json':
        try:
            config = json.loads(code)
        except json.JSONDecodeError as e:
            raise ConfigError(f'Could not parse {config_path} as JSON: {e}') from e
    else:
        match = _CONFIG_RE.search(code)
        if not match:
            raise ConfigError(f'Could not find "const firebaseConfig = {{...}}" in {config_path}.')
        config = parse_config_literal(match.group(1))

    if not isinstance(config, dict) or not config.get('projectId'):
        raise ConfigError('Parsed firebaseConfig seems invalid (missing projectId).')
    logger.debug(f"Loaded firebaseConfig for project {config['projectId']} from {full}")
    return config


def build_client(config):
    """Return a Firestore client for the project named in ``config``."""
    project_id = config['projectId']
    try:
        app = firebase_admin.get_app(project_id)
    except ValueError:
        app = firebase_admin.initialize_app(options={'projectId': project_id}, name=project_id)
    return firestore.client(app)


def load_db_from_config(config_path=DEFAULT_CONFIG_PATH):
    return build_client(read_firebase_config(config_path))
