import hashlib
import os
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from distrogen.exceptions import APINotFoundError
from distrogen.models import CurseFile, LoaderKind, LoaderSelection
from distrogen.structure import ServerMeta
from distrogen.structure.layout import SERVER_SKELETON

BASE_URL = "https://example.com/dist/"


def write_file(path, content: bytes = b"data") -> str:
    path = str(path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(content)
    return path


def sha1_of(content: bytes) -> str:
    return hashlib.sha1(content).hexdigest()


def make_server(
    root,
    server_id: str,
    version: str = "1.16.5",
    loader: LoaderKind = LoaderKind.NONE,
    loader_version: Optional[str] = None,
    main: bool = False,
    curseforge=(),
) -> str:
    """写出服务器骨架与 servermeta.toml，返回服务器目录"""
    server_dir = os.path.join(str(root), "servers", server_id)
    for relative in SERVER_SKELETON:
        os.makedirs(os.path.join(server_dir, *relative.split("/")), exist_ok=True)
    meta = ServerMeta(
        version=version,
        main=main,
        loader=LoaderSelection(loader, loader_version),
        curseforge=list(curseforge),
    )
    with open(os.path.join(server_dir, "servermeta.toml"), "w", encoding="utf-8") as f:
        f.write(meta.dumps())
    return server_dir


def curse_file(
    project_id: int,
    file_id: int,
    file_name: str,
    content: bytes = b"",
    required: Sequence[Tuple[int, Optional[int]]] = (),
    optional: Sequence[Tuple[int, Optional[int]]] = (),
) -> CurseFile:
    """按 CurseForge API 的返回格式构造文件元数据"""
    content = content or f"{project_id}:{file_id}".encode()
    dependencies = [
        {"modId": pid, "relationType": 3, "fileId": fid or 0} for pid, fid in required
    ] + [
        {"modId": pid, "relationType": 2, "fileId": fid or 0} for pid, fid in optional
    ]
    return CurseFile.from_curseforge(
        {
            "id": file_id,
            "modId": project_id,
            "fileName": file_name,
            "displayName": file_name,
            "fileLength": len(content),
            "downloadUrl": f"https://files.example.com/{file_id}/{file_name}",
            "hashes": [{"algo": 1, "value": sha1_of(content)}],
            "dependencies": dependencies,
        }
    )


def place_in_repo(root, cf: CurseFile, content: bytes = b"") -> str:
    """把文件放进本地仓库缓存，模拟已下载"""
    content = content or f"{cf.project_id}:{cf.file_id}".encode()
    path = os.path.join(
        str(root), "repo", "curseforge", str(cf.project_id), str(cf.file_id), cf.file_name
    )
    return write_file(path, content)


class FakeCurseForgeClient:
    def __init__(self) -> None:
        self.files: Dict[Tuple[int, int], CurseFile] = {}
        self.latest: Dict[int, CurseFile] = {}
        self.calls: List[tuple] = []

    def add(self, cf: CurseFile, latest: bool = False) -> CurseFile:
        self.files[(cf.project_id, cf.file_id)] = cf
        if latest:
            self.latest[cf.project_id] = cf
        return cf

    async def get_file(self, project_id: int, file_id: int) -> CurseFile:
        self.calls.append(("file", project_id, file_id))
        try:
            return self.files[(project_id, file_id)]
        except KeyError:
            raise APINotFoundError(
                f"文件不存在: {project_id}/{file_id}", status=404
            ) from None

    async def get_latest_file(self, project_id: int, game_version: str, loader=LoaderKind.NONE):
        self.calls.append(("latest", project_id, game_version, loader))
        try:
            return self.latest[project_id]
        except KeyError:
            raise APINotFoundError(f"项目 {project_id} 没有文件", status=404) from None


class FakeDownloader:
    def __init__(self, contents: Optional[Dict[str, bytes]] = None) -> None:
        self.contents = contents or {}
        self.calls: List[tuple] = []

    async def download_file(self, url, file_path, expected_sha1=None, expected_size=None):
        self.calls.append((url, file_path, expected_sha1, expected_size))
        name = os.path.basename(file_path)
        write_file(file_path, self.contents.get(name, b"downloaded"))
        return file_path


@pytest.fixture
def client() -> FakeCurseForgeClient:
    return FakeCurseForgeClient()
