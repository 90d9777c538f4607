"""
cli/app.py - 메인 CLI 엔트리포인트

Click 기반의 CLI 애플리케이션 진입점입니다.

명령어 구조:
    trample                                  # 조직 전체 인벤토리 (기본 역할/출력 디렉토리)
    trample -r AuditRole -o results          # 역할/출력 디렉토리 지정
    trample --resume results/trample_state.json
    trample -c trample.yaml -w 20 -v
    trample --version

Usage:
    # 모듈로 실행
    $ python -m cli.app
"""

import click

from cli.headless import EXIT_ERROR, run_headless
from cli.ui.console import print_error, setup_logging
from core.config import TrampleConfig, get_version
from core.exceptions import ConfigError

VERSION = get_version()


@click.command(name="trample", context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-r", "--role", "role_name", default=None, help="각 계정에서 전환할 역할 (기본: OrganizationAccountAccessRole)")
@click.option("-o", "--output", "output_dir", default=None, help="결과 디렉토리 (기본: trample_results)")
@click.option(
    "--resume",
    "resume",
    default=None,
    type=click.Path(dir_okay=False),
    help="이전 실행의 상태 파일에서 이어서 실행",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="DEBUG 로그 및 오류 상세 출력")
@click.option("-w", "--workers", "max_workers", type=int, default=None, help="동시 처리 계정 수 (기본: 10)")
@click.option("--region", default=None, help="리전 리소스(EC2/Lambda/RDS) 조회 리전")
@click.option("--profile", default=None, help="관리 계정 AWS 프로파일")
@click.option(
    "-c",
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML 설정 파일",
)
@click.option("--fresh-on-corrupt", is_flag=True, default=False, help="상태 파일이 손상된 경우 새로 시작")
@click.version_option(version=VERSION, prog_name="trample")
def cli(
    role_name: str | None,
    output_dir: str | None,
    resume: str | None,
    verbose: bool,
    max_workers: int | None,
    region: str | None,
    profile: str | None,
    config_path: str | None,
    fresh_on_corrupt: bool,
) -> None:
    """AWS Organization의 모든 계정을 순회하며 리소스를 인벤토리합니다."""
    overrides = {
        "role_name": role_name,
        "output_dir": output_dir,
        "resume": resume,
        "max_workers": max_workers,
        "region": region,
        "profile": profile,
        # 플래그는 지정된 경우에만 덮어씀
        "fresh_on_corrupt": fresh_on_corrupt or None,
        "verbose": verbose or None,
    }

    try:
        config = TrampleConfig.load(config_path, overrides)
    except ConfigError as e:
        print_error(str(e))
        raise SystemExit(EXIT_ERROR) from e

    # YAML 설정의 verbose까지 반영
    setup_logging(config.verbose)
    raise SystemExit(run_headless(config))


if __name__ == "__main__":
    cli()
