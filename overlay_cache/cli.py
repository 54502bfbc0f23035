"""
명령줄 인터페이스 모듈

오버레이 갱신, 디렉토리 캐시/미러/삭제, 레코드 조회, 저장소 설정 관리를
제공합니다.

Usage::

    overlay-cache update [NAME ...]
    overlay-cache cache DIR
    overlay-cache mirror DIR
    overlay-cache expunge DIR
    overlay-cache list [--category C]
    overlay-cache repo add NAME --url URL [--path P] [--adapter git|local]
    overlay-cache repo remove NAME
    overlay-cache repo list
    overlay-cache repo set NAME [--url URL] [--path P] [--adapter git|local]
"""

import argparse
import asyncio
import signal
import sys
from typing import Optional, Sequence

from .config.overlay import RepositoryDescriptor
from .config.settings import get_settings
from .context import OverlayContext, build_context
from .exceptions import ConfigurationException, OverlayCacheException
from .models.base import BatchReport
from .models.enums import RepositoryAdapter
from .utils.helpers import canonical_path, format_duration
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="overlay-cache",
        description="스크립트 객체 레지스트리 캐시/동기화 도구",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    update = commands.add_parser("update", help="저장소 갱신 후 레지스트리 미러링")
    update.add_argument("names", nargs="*", metavar="NAME", help="갱신할 저장소 (기본: 전체)")

    for name, help_text in (
        ("cache", "디렉토리 하위 스크립트 객체 캐시"),
        ("mirror", "디렉토리 하위 레코드를 파일시스템과 동기화"),
        ("expunge", "디렉토리 하위 레코드 일괄 삭제"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("directory", metavar="DIR")

    listing = commands.add_parser("list", help="레코드 목록 출력")
    listing.add_argument("--category", default=None, help="카테고리로 제한")

    repo = commands.add_parser("repo", help="오버레이 저장소 설정 관리")
    repo_commands = repo.add_subparsers(dest="repo_command", required=True)

    repo_add = repo_commands.add_parser("add", help="저장소 추가")
    repo_add.add_argument("name", metavar="NAME")
    repo_add.add_argument("--url", default=None, help="원격 저장소 URL")
    repo_add.add_argument("--path", default=None, help="로컬 체크아웃 경로")
    repo_add.add_argument(
        "--adapter",
        default=RepositoryAdapter.GIT.value,
        choices=[adapter.value for adapter in RepositoryAdapter],
        help="저장소 어댑터",
    )

    repo_remove = repo_commands.add_parser("remove", help="저장소 제거 (레코드 삭제 포함)")
    repo_remove.add_argument("name", metavar="NAME")

    repo_commands.add_parser("list", help="설정된 저장소 목록")

    repo_set = repo_commands.add_parser("set", help="저장소 정보 변경")
    repo_set.add_argument("name", metavar="NAME")
    repo_set.add_argument("--url", default=None, help="원격 저장소 URL")
    repo_set.add_argument("--path", default=None, help="로컬 체크아웃 경로")
    repo_set.add_argument(
        "--adapter",
        default=None,
        choices=[adapter.value for adapter in RepositoryAdapter],
        help="저장소 어댑터",
    )

    return parser


def _print_report(report: BatchReport) -> None:
    duration = ""
    if report.completed_at is not None:
        duration = f" ({format_duration((report.completed_at - report.started_at).total_seconds())})"

    print(
        f"{report.operation} {report.directory}: 처리 {report.processed}, 캐시 {report.cached}, "
        f"갱신 {report.refreshed}, 삭제 {report.deleted}, 변경 없음 {report.unchanged}, "
        f"실패 {len(report.failures)}{duration}"
    )
    for failure in report.failures:
        print(f"  실패: {failure.path} [{failure.error_code}] {failure.message}", file=sys.stderr)
    if report.cancelled:
        print("  취소됨", file=sys.stderr)


async def _update(context: OverlayContext, args: argparse.Namespace, cancel: asyncio.Event) -> int:
    results = await context.overlay.update(args.names or None, cancel)

    for result in results:
        if result.report is not None:
            print(f"[{result.repository}]", end=" ")
            _print_report(result.report)
        if result.error:
            print(f"[{result.repository}] 오류: {result.error}", file=sys.stderr)

    return EXIT_OK if all(result.ok for result in results) else EXIT_FAILURE


async def _cache(context: OverlayContext, args: argparse.Namespace, cancel: asyncio.Event) -> int:
    report = await context.engine.cache_objects_in(args.directory, cancel)
    _print_report(report)
    return EXIT_OK if report.ok and not report.cancelled else EXIT_FAILURE


async def _mirror(context: OverlayContext, args: argparse.Namespace, cancel: asyncio.Event) -> int:
    report = await context.engine.mirror_objects_in(args.directory, cancel)
    _print_report(report)
    return EXIT_OK if report.ok and not report.cancelled else EXIT_FAILURE


async def _expunge(context: OverlayContext, args: argparse.Namespace, cancel: asyncio.Event) -> int:
    deleted = await context.engine.expunge_objects_from(args.directory)
    print(f"삭제된 레코드: {deleted}")
    return EXIT_OK


async def _list(context: OverlayContext, args: argparse.Namespace, cancel: asyncio.Event) -> int:
    if args.category is not None:
        context.categories.get(args.category)

    for record in context.registry.all(args.category):
        name = record.metadata.get("name", "")
        print(f"{record.category}\t{name}\t{record.object_path}")
    return EXIT_OK


async def _repo(context: OverlayContext, args: argparse.Namespace, cancel: asyncio.Event) -> int:
    config_file = context.settings.overlay_config_file

    if args.repo_command == "list":
        for repository in context.overlay:
            print(f"[ {repository.name} ]")
            print(f"  adapter: {repository.adapter.value}")
            if repository.url:
                print(f"  url: {repository.url}")
            print(f"  path: {repository.path}")
        return EXIT_OK

    if args.repo_command == "add":
        descriptor = RepositoryDescriptor(
            adapter=RepositoryAdapter(args.adapter),
            url=args.url,
            path=args.path,
        )
        context.config.add_repository(args.name, descriptor)
        context.config.save(config_file)
        print(f"저장소 추가: {args.name}")
        return EXIT_OK

    if args.repo_command == "set":
        if args.url is None and args.path is None and args.adapter is None:
            raise ConfigurationException(args.name, "변경할 항목이 없습니다 (--url, --path, --adapter)")

        old_path = context.overlay.get(args.name).path
        context.config.update_repository(
            args.name,
            adapter=RepositoryAdapter(args.adapter) if args.adapter else None,
            url=args.url,
            path=args.path,
        )
        context.config.save(config_file)

        # 체크아웃 경로가 바뀌면 이전 경로의 레코드는 더 이상 어느 저장소에도 속하지 않음
        expunged = 0
        if args.path is not None and canonical_path(args.path) != old_path:
            expunged = await context.engine.expunge_objects_from(old_path)

        print(f"저장소 변경: {args.name} (레코드 {expunged}개 삭제)")
        return EXIT_OK

    expunged = await context.overlay.remove(args.name)
    context.config.remove_repository(args.name)
    context.config.save(config_file)
    print(f"저장소 제거: {args.name} (레코드 {expunged}개 삭제)")
    return EXIT_OK


_HANDLERS = {
    "update": _update,
    "cache": _cache,
    "mirror": _mirror,
    "expunge": _expunge,
    "list": _list,
    "repo": _repo,
}


async def _run(context: OverlayContext, args: argparse.Namespace) -> int:
    cancel = asyncio.Event()

    # SIGINT는 진행 중인 대량 작업을 취소 신호로 멈춤
    loop = asyncio.get_running_loop()
    handler_installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        logger.debug("시그널 핸들러를 설정할 수 없는 환경입니다")

    try:
        return await _HANDLERS[args.command](context, args, cancel)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """명령줄 진입점"""
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except OverlayCacheException as e:
        print(e.message, file=sys.stderr)
        return EXIT_CONFIGURATION

    setup_logging(settings)

    try:
        context = build_context(settings)
        return asyncio.run(_run(context, args))
    except KeyboardInterrupt:
        logger.info("사용자 요청으로 종료")
        return EXIT_INTERRUPTED
    except OverlayCacheException as e:
        logger.error(f"명령 실행 실패: {e.message}")
        print(e.message, file=sys.stderr)
        return EXIT_FAILURE
