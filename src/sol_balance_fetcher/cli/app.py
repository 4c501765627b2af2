from __future__ import annotations

import json
from typing import List, NoReturn, Optional

import typer
from pydantic import ValidationError

from ..collectors.orchestrator import run_fetch
from ..config.settings import AppSettings, get_settings
from ..core.errors import ConfigurationError
from ..core.logging import configure_logging
from ..core.types import FetchConfig
from ..reports.generator import ReportGenerator

app = typer.Typer(help="Solana wallet balance fetcher")


@app.command("fetch")
def command_fetch(
    rpc_url: Optional[str] = typer.Option(None, "--rpc-url", help="覆寫 SOLANA_RPC_URL"),
    wallet: Optional[List[str]] = typer.Option(None, "--wallet", "-w", help="錢包地址，可重複指定（覆寫 WALLETS）"),
    timeout: Optional[float] = typer.Option(None, help="單次請求逾時秒數"),
    max_concurrency: Optional[int] = typer.Option(None, help="同時進行的查詢上限"),
    as_json: bool = typer.Option(False, "--json", help="以 JSON 格式輸出"),
    fail_on_error: bool = typer.Option(False, help="任一錢包查詢失敗時以代碼 1 結束"),
) -> None:
    """同時查詢所有錢包餘額並依設定順序輸出。"""

    settings = _load_settings()
    configure_logging(settings.log_level)
    config = _build_config(
        settings,
        endpoint=rpc_url,
        wallets=wallet,
        timeout=timeout,
        max_concurrency=max_concurrency,
    )

    entries = run_fetch(config)
    generator = ReportGenerator()
    if as_json:
        typer.echo(generator.render_json(entries))
    else:
        typer.echo(generator.render_text(entries))

    if fail_on_error and any(not entry.ok for entry in entries):
        typer.echo(generator.summarize(entries), err=True)
        raise typer.Exit(code=1)


@app.command("show-config")
def command_show_config() -> None:
    """顯示目前生效的設定。"""

    settings = _load_settings()
    config = _build_config(settings)
    typer.echo(f"Endpoint: {config.endpoint}")
    typer.echo(f"Method: {config.query.method}")
    typer.echo(f"Params: {json.dumps(list(config.query.params))}")
    if config.query.commitment:
        typer.echo(f"Commitment: {config.query.commitment}")
    typer.echo(f"Timeout: {config.timeout if config.timeout is not None else 'none'}")
    typer.echo(f"Max concurrency: {config.max_concurrency or 'unbounded'}")
    typer.echo(f"Wallets: {len(config.addresses)}")
    for address in config.addresses:
        typer.echo(f"  {address}")


def _load_settings() -> AppSettings:
    try:
        return get_settings()
    except ValidationError as error:
        exit_with_config_error(error)


def _build_config(settings: AppSettings, **overrides: object) -> FetchConfig:
    try:
        return settings.to_fetch_config(**overrides)  # type: ignore[arg-type]
    except (ConfigurationError, ValidationError) as error:
        exit_with_config_error(error)


def exit_with_config_error(error: Exception) -> NoReturn:
    """輸出設定錯誤並以代碼 2 結束程式。"""

    typer.echo(f"[CONFIG] {error}", err=True)
    raise typer.Exit(code=2)
