"""
Command line entry point.

    mobility-engine slopes data.csv --response total_cases --predictor parks
    mobility-engine grid data.csv --response total_cases
    mobility-engine plot data.csv --response total_cases --predictor parks --out parks.png
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from mobility_engine.config import configure_logging, settings
from mobility_engine.engine.ingest import read_table
from mobility_engine.stats.errors import FitError
from mobility_engine.stats.regression import fit_group_models, fit_slope_grid

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mobility-engine", description="Per-group linear fits")
    parser.add_argument("--log-level", default=settings.log_level)
    sub = parser.add_subparsers(dest="command", required=True)

    def common(p: argparse.ArgumentParser) -> None:
        p.add_argument("path", type=Path, help="CSV/XLSX/Parquet observation table")
        p.add_argument("--group", default=settings.group_column, help="group key column")
        p.add_argument("--response", default=settings.cases_column)
        p.add_argument("--no-normalize-keys", action="store_true",
                       help="treat differently spelled group keys as different groups")

    p_slopes = sub.add_parser("slopes", help="slope per group for one predictor")
    common(p_slopes)
    p_slopes.add_argument("--predictor", required=True)
    p_slopes.add_argument("--skip-insufficient", action="store_true",
                          help="skip groups with fewer than two usable records instead of failing")
    p_slopes.add_argument("--out", type=Path, help="write CSV here instead of stdout")

    p_grid = sub.add_parser("grid", help="slopes for every (group, predictor) pair")
    common(p_grid)
    p_grid.add_argument("--predictors", nargs="+", default=None,
                        help="defaults to MOBILITY_COLUMNS present in the file")
    p_grid.add_argument("--out", type=Path)

    p_plot = sub.add_parser("plot", help="faceted scatter + fit per group")
    common(p_plot)
    p_plot.add_argument("--predictor", required=True)
    p_plot.add_argument("--out", type=Path, required=True)
    p_plot.add_argument("--ncols", type=int, default=3)

    return parser


def _emit(df: pd.DataFrame, out: Optional[Path]) -> None:
    if out is None:
        df.to_csv(sys.stdout, index=False)
    else:
        df.to_csv(out, index=False)
        logger.info("Wrote %s", out)


def _run(args: argparse.Namespace) -> None:
    table = read_table(args.path)
    normalize = not args.no_normalize_keys
    min_obs = settings.min_observations

    if args.command == "slopes":
        fits = fit_group_models(
            table,
            args.group,
            args.response,
            args.predictor,
            on_insufficient="skip" if args.skip_insufficient else "raise",
            min_obs=min_obs,
            normalize_keys=normalize,
        )
        rows = [{"group": g, "slope": m.slope} for g, m in fits.models.items()]
        _emit(pd.DataFrame(rows, columns=["group", "slope"]), args.out)
        for s in fits.skipped:
            print(f"skipped {s.group}: {s.reason}", file=sys.stderr)

    elif args.command == "grid":
        predictors = args.predictors or [c for c in settings.mobility_columns if c in table.columns]
        grid = fit_slope_grid(table, args.group, args.response, predictors, min_obs=min_obs, normalize_keys=normalize)
        _emit(grid, args.out)

    elif args.command == "plot":
        from mobility_engine.stats.plots import plot_group_fits

        import matplotlib.pyplot as plt

        fits = fit_group_models(
            table, args.group, args.response, args.predictor,
            on_insufficient="skip", min_obs=min_obs, normalize_keys=normalize,
        )
        fig = plot_group_fits(table, fits, args.group, ncols=args.ncols, normalize_keys=normalize)
        fig.savefig(args.out, dpi=150)
        plt.close(fig)
        logger.info("Wrote %s", args.out)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level.upper())
    try:
        _run(args)
    except FitError as e:
        print(f"error: {e.message}", file=sys.stderr)
        if e.suggestion:
            print(f"hint: {e.suggestion}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
