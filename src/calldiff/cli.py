from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from . import __version__
from .config import CONTIG_ORDERS, ApiSettings, CallSetInput, DiffConfig, SideInput, resolve_input
from .equivalence import EQUIVALENCE_RULES
from .errors import CallDiffError
from .pipeline import DiffFailure, run_diff
from .plotting import plot_classification_counts
from .report import render_json, render_report, render_text
from .sources.api import DEFAULT_PAGE_SIZE, DEFAULT_ROOT_URL
from .stats import DiffStats
from .toy_data import make_toy_data
from .utils import write_json
from .validation import CONTIG_STYLES, check_reference_paths


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _positive_int(s: str) -> int:
    v = int(s)
    if v <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {s}")
    return v


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    side = getattr(err, "side", None)
    prefix = f"[{side}] " if side else ""
    msg = f"{prefix}{err.__class__.__name__}: {err}"

    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def _add_side_arguments(p: argparse.ArgumentParser, side: str) -> None:
    g = p.add_argument_group(f"{side} calls (exactly one of --{side}-vcf / --{side}-callset-id)")
    g.add_argument(f"--{side}-vcf", type=_path_exists, default=None, help="VCF/BCF file (.vcf/.vcf.gz/.bcf).")
    g.add_argument(
        f"--{side}-sample-id",
        default=None,
        help="VCF sample name to use (default: first sample in VCF).",
    )
    g.add_argument(f"--{side}-callset-id", default=None, help="Remote call-set identifier.")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="calldiff",
        description=(
            "calldiff: compare two sets of variant calls (VCF files or remote call sets) "
            "against a reference genome and report concordance statistics."
        ),
    )
    p.add_argument("--version", action="version", version=f"calldiff {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for common comparisons.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny reference and two VCFs for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # diff
    # -----------------
    d = sub.add_parser(
        "diff",
        help="Compare lhs and rhs calls position by position and print concordance statistics.",
    )
    _add_side_arguments(d, "lhs")
    _add_side_arguments(d, "rhs")

    r = d.add_argument_group("reference")
    r.add_argument("--reference-fasta", default=None, help="Reference FASTA (required).")
    r.add_argument("--reference-fai", default=None, help="Explicit FASTA index (default: <fasta>.fai).")

    c = d.add_argument_group("comparison")
    c.add_argument(
        "--presorted",
        action="store_true",
        help="Inputs are already sorted by (contig, position); skip in-memory sorting.",
    )
    c.add_argument(
        "--equivalence",
        choices=list(EQUIVALENCE_RULES),
        default="reference",
        help="How calls at the same position are compared (default: reference-padded haplotypes).",
    )
    c.add_argument(
        "--strict-reference",
        action="store_true",
        help="Fail when a reference allele disagrees with the FASTA (catches 0/1-based or build mixups).",
    )
    c.add_argument(
        "--contig-order",
        choices=list(CONTIG_ORDERS),
        default="lexicographic",
        help="Contig ordering used for sorting and merging.",
    )
    c.add_argument(
        "--contig-style",
        choices=list(CONTIG_STYLES),
        default="none",
        help="Rename contigs of both inputs (chr1 vs 1); 'auto' follows the reference.",
    )
    c.add_argument(
        "--max-mismatches",
        type=_positive_int,
        default=None,
        help="Stop after this many mismatching positions (report is flagged partial).",
    )

    a = d.add_argument_group("remote call sets")
    a.add_argument("--api-key", default=None, help="API key (or set CALLDIFF_API_KEY).")
    a.add_argument("--access-token", default=None, help="OAuth bearer token (or set CALLDIFF_ACCESS_TOKEN).")
    a.add_argument("--root-url", default=DEFAULT_ROOT_URL, help="Service root URL.")
    a.add_argument("--timeout", type=float, default=None, help="Connect/read timeout in seconds.")
    a.add_argument(
        "--variant-set-id",
        action="append",
        default=None,
        help="Restrict the search to this variant set (repeatable).",
    )
    a.add_argument("--page-size", type=_positive_int, default=DEFAULT_PAGE_SIZE, help="Variants per page.")

    o = d.add_argument_group("output")
    o.add_argument("--format", choices=["text", "json"], default="text", help="Format printed to stdout.")
    o.add_argument("--html", default=None, help="Also write an HTML report to this path.")
    o.add_argument("--plot", default=None, help="Also write a classification bar chart (PNG).")
    o.add_argument("--summary-json", default=None, help="Also write statistics and run parameters as JSON.")
    o.add_argument("--progress", action="store_true", help="Show a progress bar on stderr.")
    o.add_argument("--log-file", default=None, help="Also write logs to this file.")
    o.add_argument("--dry-run", action="store_true", help="Validate configuration and print the plan.")
    o.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "calldiff quickstart (copy/paste):",
        "",
        "1) Two VCFs:",
        "   calldiff diff \\",
        "     --lhs-vcf pipeline_a.vcf.gz \\",
        "     --rhs-vcf pipeline_b.vcf.gz \\",
        "     --reference-fasta ref.fa",
        "",
        "2) VCF vs remote call set:",
        "   calldiff diff \\",
        "     --lhs-vcf pipeline_a.vcf.gz --lhs-sample-id NA12878 \\",
        "     --rhs-callset-id 12345-6789 --api-key $KEY \\",
        "     --reference-fasta ref.fa",
        "",
        "3) Try it on generated data:",
        "   calldiff make-toy-data --outdir toy/",
        "   calldiff diff --lhs-vcf toy/lhs.vcf.gz --rhs-vcf toy/rhs.vcf.gz --reference-fasta toy/toy_ref.fa",
        "",
        "Tip: use --dry-run to validate the configuration without reading any calls.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def _describe_input(choice: SideInput) -> str:
    if isinstance(choice, CallSetInput):
        return f"callset {choice.callset_id}"
    if choice.sample:
        return f"{choice.path} (sample {choice.sample})"
    return choice.path


def config_from_args(args: argparse.Namespace) -> DiffConfig:
    lhs = resolve_input("lhs", vcf=args.lhs_vcf, sample=args.lhs_sample_id, callset_id=args.lhs_callset_id)
    rhs = resolve_input("rhs", vcf=args.rhs_vcf, sample=args.rhs_sample_id, callset_id=args.rhs_callset_id)
    check_reference_paths(args.reference_fasta, args.reference_fai)
    api = ApiSettings.from_env(
        api_key=args.api_key,
        access_token=args.access_token,
        root_url=args.root_url,
        timeout=args.timeout,
        variant_set_ids=args.variant_set_id,
        page_size=args.page_size,
    )
    config = DiffConfig(
        lhs=lhs,
        rhs=rhs,
        reference_fasta=args.reference_fasta,
        reference_fai=args.reference_fai,
        presorted=bool(args.presorted),
        equivalence=args.equivalence,
        strict_reference=bool(args.strict_reference),
        contig_order=args.contig_order,
        contig_style=args.contig_style,
        max_mismatches=args.max_mismatches,
        api=api,
    )
    config.validate()
    return config


def _run_params(config: DiffConfig) -> Dict[str, Any]:
    return {
        "lhs": _describe_input(config.lhs),
        "rhs": _describe_input(config.rhs),
        "reference": config.reference_fasta,
        "presorted": config.presorted,
        "equivalence": config.equivalence,
        "strict_reference": config.strict_reference,
        "contig_order": config.contig_order,
        "contig_style": config.contig_style,
        "max_mismatches": config.max_mismatches,
    }


def _write_outputs(args: argparse.Namespace, stats: DiffStats, run: Dict[str, Any]) -> None:
    plot_rel: Optional[str] = None
    if args.plot:
        plot_path = Path(args.plot)
        plot_classification_counts(stats=stats, out_png=plot_path)
        if args.html:
            try:
                plot_rel = str(plot_path.resolve().relative_to(Path(args.html).resolve().parent))
            except ValueError:
                plot_rel = str(plot_path.resolve())

    if args.html:
        render_report(out_path=args.html, version=__version__, stats=stats, run=run, plot=plot_rel)

    if args.summary_json:
        Path(args.summary_json).parent.mkdir(parents=True, exist_ok=True)
        write_json(args.summary_json, {"version": __version__, "run": run, "stats": stats.to_dict()})


def cmd_diff(args: argparse.Namespace) -> int:
    log_path = Path(args.log_file).expanduser().resolve() if args.log_file else None
    _setup_logging(args.verbose, logfile=log_path)

    logger = logging.getLogger("calldiff")
    logger.info("calldiff %s", __version__)

    try:
        config = config_from_args(args)
    except CallDiffError as e:
        return _handle_error(e, log_path=log_path)

    run = _run_params(config)
    if args.dry_run:
        print("Dry-run: configuration looks OK.")
        for key in ("lhs", "rhs", "reference", "equivalence", "contig_order", "presorted"):
            print(f"  {key}: {run[key]}")
        return 0

    result = run_diff(config, progress=bool(args.progress))
    if isinstance(result, DiffFailure):
        return _handle_error(result.error, log_path=log_path)
    stats = result.stats

    try:
        _write_outputs(args, stats, run)
    except OSError as e:
        return _handle_error(e, log_path=log_path)

    if args.format == "json":
        print(render_json(stats, run=run))
    else:
        sys.stdout.write(render_text(stats, version=__version__))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "diff":
        return cmd_diff(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
