import pytest

from distrogen.exceptions import ConfigError, UnsupportedLoaderError
from distrogen.models import LoaderKind, ModuleType
from distrogen.resolver import LoaderInstallerResolver, LoaderLayoutTable
from distrogen.version import VersionToken


@pytest.fixture
def resolver():
    return LoaderInstallerResolver()


def test_vanilla_has_no_loader_modules(resolver):
    assert resolver.resolve(LoaderKind.NONE, VersionToken.parse("1.20.1"), None) == []


def test_legacy_forge_is_single_installer(resolver):
    decls = resolver.resolve(LoaderKind.FORGE, VersionToken.parse("1.12.2"), "14.23.5.2859")

    assert len(decls) == 1
    decl = decls[0]
    assert decl.is_leaf
    assert decl.id == "net.minecraftforge:forge:1.12.2-14.23.5.2859"
    assert decl.type == ModuleType.LOADER_INSTALLER
    assert decl.path == "loader/forge-1.12.2-14.23.5.2859-universal.jar"
    assert decl.required


def test_modern_forge_is_installer_plus_libraries(resolver):
    decls = resolver.resolve(LoaderKind.FORGE, VersionToken.parse("1.16.5"), "36.2.39")

    assert len(decls) == 1
    group = decls[0]
    assert not group.is_leaf
    assert group.id == "net.minecraftforge:forge:1.16.5-36.2.39"
    assert [child.id for child in group.children] == [
        "forge-1.16.5-36.2.39-installer.jar",
        "version.json",
        "forge-1.16.5-36.2.39-client.jar",
    ]
    assert [child.type for child in group.children] == [
        ModuleType.LOADER_INSTALLER,
        ModuleType.LOADER_LIBRARY,
        ModuleType.LOADER_LIBRARY,
    ]
    assert all(child.required for child in group.children)
    assert list(group.iter_paths()) == [f"loader/{child.id}" for child in group.children]


def test_boundary_version_uses_modern_layout(resolver):
    game = VersionToken.parse("1.13")
    assert resolver.is_modern(LoaderKind.FORGE, game)
    assert not resolver.is_modern(LoaderKind.FORGE, VersionToken.parse("1.13-pre1"))


def test_fabric_layout(resolver):
    decls = resolver.resolve(LoaderKind.FABRIC, VersionToken.parse("1.20.1"), "0.14.21")

    assert [child.id for child in decls[0].children] == [
        "fabric-loader-0.14.21-1.20.1.json",
        "fabric-loader-0.14.21.jar",
        "intermediary-1.20.1.jar",
    ]


def test_fabric_rejects_old_game_versions(resolver):
    with pytest.raises(UnsupportedLoaderError):
        resolver.resolve(LoaderKind.FABRIC, VersionToken.parse("1.12.2"), "0.14.21")


def test_forge_rejects_versions_below_minimum(resolver):
    with pytest.raises(UnsupportedLoaderError):
        resolver.resolve(LoaderKind.FORGE, VersionToken.parse("1.4.7"), "6.6.2.534")


@pytest.mark.parametrize("loader_version", [None, "", "latest", "36.2"])
def test_malformed_loader_versions_are_rejected(resolver, loader_version):
    kind = LoaderKind.FABRIC if loader_version == "36.2" else LoaderKind.FORGE
    with pytest.raises(UnsupportedLoaderError):
        resolver.resolve(kind, VersionToken.parse("1.16.5"), loader_version)


def test_layout_table_overrides():
    table = LoaderLayoutTable.from_dict({"forge": {"boundary": "1.12"}})
    resolver = LoaderInstallerResolver(table)

    decls = resolver.resolve(LoaderKind.FORGE, VersionToken.parse("1.12.2"), "14.23.5.2859")
    assert not decls[0].is_leaf
    assert table.get(LoaderKind.FABRIC).boundary == "1.14"


@pytest.mark.parametrize(
    "overrides",
    [
        {"quilt": {"boundary": "1.14"}},
        {"none": {"boundary": "1.0"}},
        {"forge": {"no_such_field": 1}},
    ],
)
def test_invalid_layout_overrides(overrides):
    with pytest.raises(ConfigError):
        LoaderLayoutTable.from_dict(overrides)
