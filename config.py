import json, os
from typing import Any, Dict

from log_parser import STOP_MARKER, LinePatterns

DEFAULT_CONFIG = {
    'log': {'path': 'logs/latest.log', 'interval': 2.0, 'encoding': 'utf-8'},
    'patterns': {'stop_marker': STOP_MARKER, 'announcements': False},
    'rcon': {'enabled': True, 'host': 'localhost', 'port': 25575, 'password': 'Password', 'timeout': 5.0},
    'logging': {'level': 'INFO'},
}


def _deep_copy(d):
    return json.loads(json.dumps(d))


def load_config(path='config.json'):
    if not os.path.isfile(path):
        conf = _deep_copy(DEFAULT_CONFIG)
        save_config(conf, path)
        return conf
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    def deep_merge(d, default):
        for k, v in default.items():
            if k not in d:
                d[k] = _deep_copy(v) if isinstance(v, dict) else v
            elif isinstance(v, dict) and isinstance(d[k], dict):
                deep_merge(d[k], v)
    deep_merge(data, DEFAULT_CONFIG)
    return data


def save_config(conf, path='config.json'):
    tmp = path + '.tmp'
    with open(tmp, 'w', encoding='utf-8') as f:
        json.dump(conf, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


def build_patterns(conf: Dict[str, Any]) -> LinePatterns:
    p = conf.get('patterns', {})
    return LinePatterns.build(
        stop_marker=str(p.get('stop_marker', STOP_MARKER)),
        announcements=bool(p.get('announcements', False)),
    )
