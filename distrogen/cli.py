"""
CLI 模块

命令行接口实现：init root / generate server / generate distro。
"""

import asyncio
import json
import os
from typing import Optional

import click
from dotenv import load_dotenv
from loguru import logger

from distrogen import __version__
from distrogen.config import DistroSettings, load_settings, resolve_root
from distrogen.download import DownloadManager
from distrogen.exceptions import DistroGenError
from distrogen.logger import resolve_level, setup_logger
from distrogen.resolver import ArtifactCache, LoaderInstallerResolver
from distrogen.schema import generate_schemas
from distrogen.services import CurseForgeClient
from distrogen.structure import (
    MANIFEST_NAME,
    BuildResult,
    DistributionStructureBuilder,
    ServerStructureBuilder,
)


async def init_root_async(root: str) -> None:
    """生成 schema 并初始化空的根目录"""
    await generate_schemas(root)
    await DistributionStructureBuilder(root, base_url="").init()


async def generate_server_async(
    settings: DistroSettings,
    server_id: str,
    version: str,
    forge: Optional[str],
    fabric: Optional[str],
    main_server: bool,
) -> None:
    builder = ServerStructureBuilder(
        settings.root, LoaderInstallerResolver(settings.loader_layouts)
    )
    await builder.create_server(
        server_id,
        version,
        forge_version=forge,
        fabric_version=fabric,
        main_server=main_server,
    )


async def generate_distro_async(settings: DistroSettings, manifest_name: str) -> BuildResult:
    """构建并写出分发清单"""
    manifest_path = os.path.join(settings.root, manifest_name)
    cache = await ArtifactCache.from_manifest(manifest_path)

    async with CurseForgeClient(
        api_key=settings.curseforge_api_key,
        base_url=settings.curseforge_api_url,
        max_retries=settings.max_retries,
        retry_delay=settings.retry_delay,
        timeout=settings.timeout,
        max_connections=settings.max_concurrent,
    ) as client, DownloadManager(
        max_retries=settings.max_retries,
        retry_delay=settings.retry_delay,
        timeout=settings.timeout,
    ) as downloader:
        builder = DistributionStructureBuilder(
            settings.root,
            settings.base_url,
            cache=cache,
            client=client,
            downloader=downloader if settings.download else None,
            loader_resolver=LoaderInstallerResolver(settings.loader_layouts),
            max_concurrent=settings.max_concurrent,
            manifest_name=manifest_name,
        )
        await builder.init()
        return await builder.generate()


def _report(result: BuildResult, report_path: Optional[str] = None) -> None:
    """输出失败摘要，并按需写出 JSON 报告"""
    if report_path:
        with open(report_path, "w", encoding="utf-8") as f:
            json.dump(result.report.summary(), f, ensure_ascii=False, indent=2)
        logger.info(f"构建报告已写入: {report_path}")
    if result.report.ok:
        logger.success(f"分发清单生成成功，共 {len(result.distribution.servers)} 个服务器")
        return
    logger.warning(f"分发清单已生成，但有 {len(result.report.failures)} 处失败:")
    for failure in result.report.sorted():
        logger.warning(f"  {failure}")


@click.group()
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.option("--log-file", type=click.Path(dir_okay=False), help="额外写入的日志文件")
@click.version_option(version=__version__)
def main(debug: bool, log_file: Optional[str]):
    """DistroGen - 服务器分发清单生成工具"""
    load_dotenv()
    setup_logger(level=resolve_level(debug=debug), log_file=log_file)


@main.group()
def init():
    """初始化命令"""


@init.command("root")
@click.argument("root", type=click.Path(file_okay=False))
def init_root(root: str):
    """生成空的标准目录结构"""
    try:
        root = resolve_root(root)
        logger.debug(f"根目录: {root}")
        asyncio.run(init_root_async(root))
    except DistroGenError as e:
        logger.error(f"初始化根目录失败 {root}: {e}")
        raise click.ClickException(str(e))
    logger.success(f"已初始化根目录: {root}")


@main.group()
def generate():
    """生成命令"""


@generate.command("server")
@click.argument("server_id")
@click.argument("version")
@click.option("--forge", help="Forge 版本")
@click.option("--fabric", help="Fabric 版本")
@click.option("--root", type=click.Path(file_okay=False), help="根目录（默认读取 ROOT）")
@click.option("--main", "main_server", is_flag=True, help="标记为主服务器")
def generate_server(
    server_id: str,
    version: str,
    forge: Optional[str],
    fabric: Optional[str],
    root: Optional[str],
    main_server: bool,
):
    """生成新的服务器配置"""
    try:
        settings = load_settings(root=root, require_base_url=False)
        logger.info(f"根目录: {settings.root}")
        logger.info(f"Forge: {forge or 'none'}, Fabric: {fabric or 'none'}")
        asyncio.run(
            generate_server_async(settings, server_id, version, forge, fabric, main_server)
        )
    except DistroGenError as e:
        logger.error(f"生成服务器失败: {e}")
        raise click.ClickException(str(e))
    logger.success(f"服务器 {server_id} 生成成功")


@generate.command("distro")
@click.option("--root", type=click.Path(file_okay=False), help="根目录（默认读取 ROOT）")
@click.option("--base-url", help="下载基础地址（默认读取 BASE_URL）")
@click.option("--name", "manifest_name", default=MANIFEST_NAME, show_default=True, help="清单文件名")
@click.option("--no-download", is_flag=True, help="不下载第三方文件，只使用本地缓存")
@click.option("--report", "report_path", type=click.Path(dir_okay=False), help="把失败摘要写为 JSON 文件")
@click.pass_context
def generate_distro(
    ctx: click.Context,
    root: Optional[str],
    base_url: Optional[str],
    manifest_name: str,
    no_download: bool,
    report_path: Optional[str],
):
    """生成分发清单"""
    try:
        settings = load_settings(root=root, base_url=base_url)
        if no_download:
            settings.download = False
        logger.info(f"生成分发清单 {manifest_name}，根目录: {settings.root}")
        logger.info(f"BASE_URL: {settings.base_url}")
        result = asyncio.run(generate_distro_async(settings, manifest_name))
    except DistroGenError as e:
        logger.error(f"生成分发清单失败: {e}")
        raise click.ClickException(str(e))

    _report(result, report_path)
    ctx.exit(result.exit_code)


if __name__ == "__main__":
    main()
