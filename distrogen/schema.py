"""
JSON Schema 输出

为编辑器写出 servermeta.toml 与 distribution.json 的 JSON Schema，只在初始化
根目录时调用一次。
"""

import json
import os
from typing import Any, Dict

import aiofiles
from loguru import logger

from distrogen.models import LoaderKind, ModuleType
from distrogen.structure.layout import SCHEMAS_DIR

JSON_SCHEMA = "http://json-schema.org/draft-07/schema#"


def servermeta_schema() -> Dict[str, Any]:
    return {
        "$schema": JSON_SCHEMA,
        "title": "servermeta.toml",
        "type": "object",
        "required": ["server"],
        "properties": {
            "server": {
                "type": "object",
                "required": ["version"],
                "properties": {
                    "version": {"type": "string", "description": "Minecraft version"},
                    "main": {"type": "boolean", "default": False},
                },
            },
            "loader": {
                "type": "object",
                "properties": {
                    "type": {"enum": [kind.value for kind in LoaderKind]},
                    "version": {"type": "string"},
                },
            },
            "curseforge": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["project_id", "file_id"],
                    "properties": {
                        "project_id": {"type": "integer"},
                        "file_id": {"type": "integer"},
                        "required": {"type": "boolean", "default": True},
                        "default": {"type": "boolean", "default": False},
                    },
                },
            },
        },
    }


def distribution_schema() -> Dict[str, Any]:
    artifact = {
        "type": ["object", "null"],
        "required": ["path", "hash", "size", "url"],
        "properties": {
            "path": {"type": "string"},
            "hash": {"type": "string", "pattern": "^[0-9a-f]{40}$"},
            "size": {"type": "integer", "minimum": 0},
            "url": {"type": "string"},
        },
    }
    return {
        "$schema": JSON_SCHEMA,
        "title": "distribution.json",
        "type": "object",
        "required": ["version", "servers"],
        "definitions": {
            "module": {
                "type": "object",
                "required": ["id", "type", "required", "artifact", "subModules"],
                "properties": {
                    "id": {"type": "string"},
                    "type": {"enum": [t.value for t in ModuleType]},
                    "required": {"type": "boolean"},
                    "default": {"type": "boolean"},
                    "artifact": artifact,
                    "subModules": {
                        "type": "array",
                        "items": {"$ref": "#/definitions/module"},
                    },
                },
            },
        },
        "properties": {
            "version": {"type": "string"},
            "servers": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["id", "version", "mainServer", "modules"],
                    "properties": {
                        "id": {"type": "string"},
                        "version": {"type": "string"},
                        "mainServer": {"type": "boolean"},
                        "modules": {
                            "type": "array",
                            "items": {"$ref": "#/definitions/module"},
                        },
                    },
                },
            },
        },
    }


SCHEMAS = {
    "servermeta.schema.json": servermeta_schema,
    "distribution.schema.json": distribution_schema,
}


async def generate_schemas(root: str) -> None:
    """写出全部 schema 文件（内容相同时不重写）"""
    schema_dir = os.path.join(root, SCHEMAS_DIR)
    os.makedirs(schema_dir, exist_ok=True)
    for name, factory in SCHEMAS.items():
        path = os.path.join(schema_dir, name)
        content = json.dumps(factory(), indent=2) + "\n"
        if os.path.isfile(path):
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                if await f.read() == content:
                    continue
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(content)
        logger.debug(f"[schema] 已写入 {path}")
