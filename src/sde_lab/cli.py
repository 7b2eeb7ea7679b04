from __future__ import annotations

import argparse
from typing import List, Optional

from sde_lab import __version__
from sde_lab.config.loader import load_config
from sde_lab.engine import analyze_sensitivity, run_monte_carlo
from sde_lab.logging_config import setup_logging
from sde_lab.sde.models import create_model
from sde_lab.sde.presets import PRESETS, get_preset
from sde_lab.sde.schemas import MonteCarloResult, SensitivityResult


# ============================================================
# Output helpers
# ============================================================


def _print_monte_carlo(title: str, model_tag: str, result: MonteCarloResult) -> None:
    ens, stats = result.ensemble, result.statistics
    model = create_model(model_tag, ens.parameters)

    print(f"\n========== {title} ==========")
    print(f"Model: {model.name()}  ({model.equation_latex()})")
    print(f"Paths: {ens.n_paths} (requested {ens.requested}, dropped {ens.dropped})")
    if ens.cancelled:
        print("Run was cancelled before completion.")
    print(f"Horizon T={ens.parameters.T:g}, steps={ens.parameters.steps}")
    print(f"Terminal mean:     {stats.mean[-1]:.6f}")
    print(f"Terminal variance: {stats.variance[-1]:.6f}")
    for name, band in stats.percentiles.items():
        print(f"Terminal {name:<4}:    {band[-1]:.6f}")
    print("=" * (22 + len(title)) + "\n")


def _print_sensitivity(result: SensitivityResult) -> None:
    print(f"\n---------- Sensitivity: {result.parameter} ----------")
    print(f"Base-case terminal value: {result.base_case.final_value:.6f}")
    print(f"{'value':>12} {'mean final':>14} {'std final':>14}")
    for point in result.results:
        print(
            f"{point.value:>12.6g} {point.mean_final_value:>14.6f} "
            f"{point.std_final_value:>14.6f}"
        )
    print(f"({result.paths_per_value} paths per value)\n")


def _parse_values(text: str) -> List[float]:
    try:
        return [float(v) for v in text.split(",") if v.strip()]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid value list: {text!r}") from e


# ============================================================
# Command: run
# ============================================================


def cmd_run(args):
    print(f"[sdelab] Running simulation: {args.config}")
    cfg = load_config(args.config)

    result = run_monte_carlo(
        cfg.model,
        cfg.parameters,
        cfg.n_paths,
        seed=cfg.seed,
        settings=cfg.settings,
    )
    _print_monte_carlo(f"{cfg.name} Complete", cfg.model, result)

    if cfg.sensitivity is not None:
        sens = analyze_sensitivity(
            cfg.model,
            cfg.parameters,
            cfg.sensitivity.parameter,
            cfg.sensitivity.values,
            paths_per_value=cfg.sensitivity.paths_per_value,
            seed=cfg.seed,
            settings=cfg.settings,
        )
        _print_sensitivity(sens)


# ============================================================
# Command: presets list / presets run <name>
# ============================================================


def cmd_presets_list(args):
    print("[sdelab] Available presets:")
    for p in PRESETS:
        print(f"  - {p.name} [{p.category}, {p.model.value}] : {p.description}")


def cmd_presets_run(args):
    preset = get_preset(args.preset)
    print(f"[sdelab] Running preset '{preset.name}' with {args.paths} paths")
    result = run_monte_carlo(
        preset.model, preset.parameters, args.paths, seed=args.seed
    )
    _print_monte_carlo("Preset Complete", preset.model.value, result)


# ============================================================
# Command: sensitivity
# ============================================================


def cmd_sensitivity(args):
    cfg = load_config(args.config)
    print(f"[sdelab] Sensitivity of '{args.param}' for {cfg.model}")
    sens = analyze_sensitivity(
        cfg.model,
        cfg.parameters,
        args.param,
        args.values,
        paths_per_value=args.paths,
        seed=cfg.seed,
        settings=cfg.settings,
    )
    _print_sensitivity(sens)


# ============================================================
# Command: version
# ============================================================


def cmd_version(args):
    print(__version__)


# ============================================================
# Main CLI
# ============================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sdelab", description="SDE simulation CLI")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # ------------------------------------------------------------------
    # run
    # ------------------------------------------------------------------
    p_run = sub.add_parser("run", help="Run a Monte Carlo simulation from a config")
    p_run.add_argument("--config", required=True, help="Path to config JSON/YAML")
    p_run.set_defaults(func=cmd_run)

    # ------------------------------------------------------------------
    # presets
    # ------------------------------------------------------------------
    p_pre = sub.add_parser("presets", help="List or run preset templates")
    pre_sub = p_pre.add_subparsers(dest="presets_cmd", required=True)

    p_list = pre_sub.add_parser("list", help="List available presets")
    p_list.set_defaults(func=cmd_presets_list)

    p_run_pre = pre_sub.add_parser("run", help="Run a preset")
    p_run_pre.add_argument("preset", help="Preset name")
    p_run_pre.add_argument("--paths", type=int, default=1000)
    p_run_pre.add_argument("--seed", type=int, default=None)
    p_run_pre.set_defaults(func=cmd_presets_run)

    # ------------------------------------------------------------------
    # sensitivity
    # ------------------------------------------------------------------
    p_sens = sub.add_parser("sensitivity", help="1-D parameter sensitivity sweep")
    p_sens.add_argument("--config", required=True, help="Path to config JSON/YAML")
    p_sens.add_argument("--param", required=True, help="Parameter to vary")
    p_sens.add_argument(
        "--values", required=True, type=_parse_values, help="Comma-separated values"
    )
    p_sens.add_argument("--paths", type=int, default=None, help="Paths per value")
    p_sens.set_defaults(func=cmd_sensitivity)

    # ------------------------------------------------------------------
    # version
    # ------------------------------------------------------------------
    p_ver = sub.add_parser("version", help="Show version")
    p_ver.set_defaults(func=cmd_version)

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
