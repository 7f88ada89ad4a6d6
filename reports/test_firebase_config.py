import json

import pytest

import firebase_config
from errors import ConfigError
from firebase_config import parse_config_literal, read_firebase_config


CONFIG_TS = '''
import { initializeApp } from "firebase/app";
import { initializeAuth, getReactNativePersistence } from "firebase/auth";

// Your web app's Firebase configuration
const firebaseConfig = {
  apiKey: "AIzaSyExample",
  authDomain: 'guess-game.firebaseapp.com', // comment with "quotes"
  projectId: "guess-game",
  storageBucket: "guess-game.appspot.com",
  messagingSenderId: "1234567890",
  /* analytics */
  measurementId: "G-ABC",
};

export const app = initializeApp(firebaseConfig);
'''


def test_parse_literal_with_bare_keys_and_trailing_comma():
    config = parse_config_literal("{ a: 'x', \"b\": 2, c: true, d: null, e: [1, 2,], }")
    assert config == {'a': 'x', 'b': 2, 'c': True, 'd': None, 'e': [1, 2]}


def test_parse_literal_keeps_urls_in_strings():
    config = parse_config_literal('{ databaseURL: "https://guess-game.firebaseio.com" }')
    assert config['databaseURL'] == 'https://guess-game.firebaseio.com'


def test_parse_literal_rejects_expressions():
    with pytest.raises(ConfigError):
        parse_config_literal('{ apiKey: process.env.API_KEY }')


def test_read_ts_config(tmp_path):
    path = tmp_path / 'firebaseConfig.ts'
    path.write_text(CONFIG_TS, encoding='utf-8')
    config = read_firebase_config(str(path))
    assert config['projectId'] == 'guess-game'
    assert config['authDomain'] == 'guess-game.firebaseapp.com'
    assert config['measurementId'] == 'G-ABC'


def test_read_json_config(tmp_path):
    path = tmp_path / 'firebaseConfig.json'
    path.write_text(json.dumps({'projectId': 'guess-game'}), encoding='utf-8')
    assert read_firebase_config(str(path)) == {'projectId': 'guess-game'}


def test_missing_literal(tmp_path):
    path = tmp_path / 'firebaseConfig.ts'
    path.write_text('export const config = {};\n', encoding='utf-8')
    with pytest.raises(ConfigError, match='Could not find'):
        read_firebase_config(str(path))


def test_missing_project_id(tmp_path):
    path = tmp_path / 'firebaseConfig.ts'
    path.write_text('const firebaseConfig = { apiKey: "k" };\n', encoding='utf-8')
    with pytest.raises(ConfigError, match='missing projectId'):
        read_firebase_config(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match='Could not read'):
        read_firebase_config(str(tmp_path / 'nope.ts'))


def test_build_client_reuses_named_app(monkeypatch):
    apps = {}
    created = []

    def get_app(name):
        if name not in apps:
            raise ValueError(name)
        return apps[name]

    def initialize_app(options=None, name=None):
        created.append((options, name))
        apps[name] = f'app:{name}'
        return apps[name]

    monkeypatch.setattr(firebase_config.firebase_admin, 'get_app', get_app)
    monkeypatch.setattr(firebase_config.firebase_admin, 'initialize_app', initialize_app)
    monkeypatch.setattr(firebase_config.firestore, 'client', lambda app: f'client for {app}')

    first = firebase_config.build_client({'projectId': 'guess-game'})
    second = firebase_config.build_client({'projectId': 'guess-game'})
    assert first == second == 'client for app:guess-game'
    assert created == [({'projectId': 'guess-game'}, 'guess-game')]
