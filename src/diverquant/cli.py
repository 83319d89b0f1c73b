from __future__ import annotations

import argparse
import json
import logging

from diverquant.backtest import BacktestEngine, PortfolioConfig
from diverquant.config import Settings
from diverquant.data.csv_source import CsvTickSource
from diverquant.engine import SignalHub
from diverquant.logging_config import configure_logging
from diverquant.strategies.divergence import DivergenceStrategy

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DiverQuant CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    replay = subparsers.add_parser("replay", help="Replay a tick file through the signal engine")
    replay.add_argument("--input", required=True, help="CSV with timestamp and price columns")
    replay.add_argument("--instrument", default=None)
    replay.add_argument("--workers", type=int, default=1)
    replay.add_argument(
        "--only-actionable",
        action="store_true",
        help="Skip HOLD signals in the output",
    )

    backtest = subparsers.add_parser(
        "backtest",
        help="Backtest the divergence strategy on a tick file",
    )
    backtest.add_argument("--input", required=True)
    backtest.add_argument("--instrument", default=None)

    serve = subparsers.add_parser("serve", help="Run the signal API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def _handle_replay(args: argparse.Namespace, settings: Settings) -> int:
    source = CsvTickSource(args.input, default_instrument=settings.default_instrument)
    hub = SignalHub(settings.engine_config())
    signals = hub.process_many(source.ticks(args.instrument), max_workers=args.workers)

    emitted = 0
    for signal in signals:
        if args.only_actionable and not signal.is_actionable:
            continue
        print(json.dumps(signal.to_payload()))
        emitted += 1
    logger.info("Replayed %s instrument(s), emitted %s signal(s)", len(hub.instruments()), emitted)
    return 0


def _handle_backtest(args: argparse.Namespace, settings: Settings) -> int:
    source = CsvTickSource(args.input, default_instrument=settings.default_instrument)
    frame = source.frame(args.instrument)
    instrument = args.instrument or source.instruments()[0]

    engine = BacktestEngine(
        strategy=DivergenceStrategy(settings.engine_config(), instrument=instrument),
        portfolio_config=PortfolioConfig(
            initial_cash=settings.initial_cash,
            commission_bps=settings.commission_bps,
            periods_per_year=settings.periods_per_year,
        ),
    )
    result = engine.run(frame)

    summary = result.summary()
    payload = {
        "instrument": instrument,
        "rows": int(len(frame)),
        "annual_return": round(result.annual_return, 6),
        "max_drawdown": round(result.max_drawdown, 6),
        "sharpe": round(result.sharpe, 6),
        "final_equity": round(float(result.equity.iloc[-1]), 2),
        "benchmark_annual_return": round(result.benchmark_annual_return, 6),
        "benchmark_max_drawdown": round(result.benchmark_max_drawdown, 6),
        "benchmark_final_equity": round(float(result.benchmark_equity.iloc[-1]), 2),
        "signal_counts": summary["signal_counts"],
        "outcomes": summary["outcomes"],
    }
    print(json.dumps(payload))
    return 0


def _handle_serve(args: argparse.Namespace) -> int:
    from diverquant.web.app import run

    run(host=args.host, port=args.port)
    return 0


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    parser = _build_parser()
    args = parser.parse_args()

    try:
        if args.command == "replay":
            raise SystemExit(_handle_replay(args, settings))
        if args.command == "backtest":
            raise SystemExit(_handle_backtest(args, settings))
        if args.command == "serve":
            raise SystemExit(_handle_serve(args))
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    raise SystemExit("Unknown command")


if __name__ == "__main__":
    main()
