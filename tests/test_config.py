import json

import pytest

from distrogen.config import load_config, load_settings, normalize_base_url
from distrogen.exceptions import ConfigError, InvalidConfigurationError
from distrogen.models import LoaderKind


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("example.com/dist", "https://example.com/dist/"),
        ("http://example.com", "http://example.com/"),
        (" https://example.com/dist/ ", "https://example.com/dist/"),
    ],
)
def test_normalize_base_url(raw, expected):
    assert normalize_base_url(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "ftp://example.com", "https://"])
def test_invalid_base_url(raw):
    with pytest.raises(InvalidConfigurationError):
        normalize_base_url(raw)


def test_settings_from_environment(tmp_path):
    settings = load_settings(
        environ={"ROOT": str(tmp_path), "BASE_URL": "cdn.example.com", "CF_API_KEY": "secret"}
    )

    assert settings.root == str(tmp_path)
    assert settings.base_url == "https://cdn.example.com/"
    assert settings.curseforge_api_key == "secret"
    assert settings.max_concurrent == 8


def test_arguments_override_environment_and_file(tmp_path):
    (tmp_path / "distro.toml").write_text(
        '[distro]\nbase_url = "file.example.com"\nmax_concurrent = 4\n\n'
        '[loaders.forge]\nboundary = "1.12"\n',
        encoding="utf-8",
    )

    from_file = load_settings(root=str(tmp_path), environ={})
    from_env = load_settings(root=str(tmp_path), environ={"BASE_URL": "env.example.com"})
    from_arg = load_settings(
        root=str(tmp_path), base_url="arg.example.com", environ={"BASE_URL": "env.example.com"}
    )

    assert from_file.base_url == "https://file.example.com/"
    assert from_env.base_url == "https://env.example.com/"
    assert from_arg.base_url == "https://arg.example.com/"
    assert from_file.max_concurrent == 4
    assert from_file.loader_layouts.get(LoaderKind.FORGE).boundary == "1.12"


def test_missing_root_or_base_url(tmp_path):
    with pytest.raises(InvalidConfigurationError):
        load_settings(environ={"BASE_URL": "example.com"})
    with pytest.raises(InvalidConfigurationError):
        load_settings(root=str(tmp_path), environ={})
    assert load_settings(root=str(tmp_path), environ={}, require_base_url=False).base_url == ""


def test_yaml_and_json_configs(tmp_path):
    yaml_path = tmp_path / "distro.yaml"
    yaml_path.write_text("distro:\n  timeout: 5\n", encoding="utf-8")
    json_path = tmp_path / "other.json"
    json_path.write_text(json.dumps({"curseforge": {"api_key": "k"}}), encoding="utf-8")

    assert load_settings(root=str(tmp_path), environ={}, require_base_url=False).timeout == 5.0
    settings = load_settings(
        root=str(tmp_path), environ={}, require_base_url=False, config_path=str(json_path)
    )
    assert settings.curseforge_api_key == "k"


@pytest.mark.parametrize(
    "name, content",
    [
        ("distro.toml", "[distro\n"),
        ("distro.ini", "[distro]\n"),
        ("distro.yaml", "- a\n- b\n"),
    ],
)
def test_bad_config_files(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_bad_config_values(tmp_path):
    (tmp_path / "distro.toml").write_text('[distro]\nmax_concurrent = "many"\n', encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(root=str(tmp_path), environ={}, require_base_url=False)
