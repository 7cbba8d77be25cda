"""
Command-line interface for PN-BPMN.

Provides commands for converting between Petri nets, process trees and
diagrams, and for inspecting model files.

:return : CLI commands.
:return: Main entry point for command-line usage.
"""

import argparse
import logging
import sys
from pathlib import Path

from pn_bpmn.config import EndEventJoin, LabelMode, NetTranslationConfig
from pn_bpmn.integration.pm4py_adapter import (
    discover_process_tree,
    export_bpmn,
    export_pnml,
    export_to_json,
    import_bpmn,
    import_pnml,
    import_process_tree,
)
from pn_bpmn.map.bpmn_to_pn import convert_bpmn_to_petri_net
from pn_bpmn.map.pn_to_bpmn import (
    convert_petri_net_to_bpmn,
    convert_petri_net_to_bpmn_with_subprocesses,
)
from pn_bpmn.map.tree_to_bpmn import convert_process_tree_to_bpmn
from pn_bpmn.models.result import ConversionResult


def _report(result: ConversionResult) -> None:
    for warning in result.warnings:
        print(f"Warning: {warning}")
    if not result.ok:
        raise RuntimeError("; ".join(result.errors))


def _prepare_output(path: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def _write_diagram(result: ConversionResult, args: argparse.Namespace) -> None:
    diagram = result.target
    print(
        f"Diagram with {len(diagram.activities())} activities, {len(diagram.gateways())} gateways "
        f"and {len(diagram.flows())} flows"
    )
    if args.out_bpmn:
        _prepare_output(args.out_bpmn)
        export_bpmn(diagram, args.out_bpmn)
        print(f"Exported diagram to: {args.out_bpmn}")
    if args.out_json:
        _prepare_output(args.out_json)
        export_to_json(diagram, args.out_json, dict(result.conversion_map))
        print(f"Exported JSON to: {args.out_json}")


def cmd_pn2bpmn(args: argparse.Namespace) -> None:
    """
    Convert a PNML net into a diagram.

    :param args: Command-line arguments.
    :return : None.
    :return: Side-effect of conversion and export.
    """
    print(f"Converting Petri net: {args.pnml}")
    net = import_pnml(args.pnml)
    print(f"Loaded net with {len(net.places())} places and {len(net.transitions())} transitions")

    if args.subprocesses:
        result = convert_petri_net_to_bpmn_with_subprocesses(net)
    else:
        result = convert_petri_net_to_bpmn(
            net, simplify=not args.no_simplify, cancellation=args.cancellation
        )
    _report(result)
    _write_diagram(result, args)


def cmd_bpmn2pn(args: argparse.Namespace) -> None:
    """
    Convert a BPMN file into a Petri net.

    :param args: Command-line arguments.
    :return : None.
    :return: Side-effect of conversion and export.
    """
    print(f"Converting diagram: {args.bpmn}")
    diagram = import_bpmn(args.bpmn)
    config = NetTranslationConfig(
        label_nodes_with=LabelMode(args.label_mode),
        end_event_join=EndEventJoin(args.end_event_join),
        label_flow_places=args.label_flow_places,
    )
    result = convert_bpmn_to_petri_net(diagram, config)
    _report(result)

    net = result.target
    print(f"Net with {len(net.places())} places and {len(net.transitions())} transitions")
    if args.out_pnml:
        _prepare_output(args.out_pnml)
        export_pnml(net, args.out_pnml)
        print(f"Exported net to: {args.out_pnml}")
    if args.out_json:
        _prepare_output(args.out_json)
        export_to_json(net, args.out_json, dict(result.conversion_map))
        print(f"Exported JSON to: {args.out_json}")


def cmd_tree2bpmn(args: argparse.Namespace) -> None:
    """
    Convert a process tree, read from PTML or derived from a PNML net, into a diagram.

    :param args: Command-line arguments.
    :return : None.
    :return: Side-effect of conversion and export.
    """
    if args.ptml:
        print(f"Converting process tree: {args.ptml}")
        tree = import_process_tree(args.ptml)
    else:
        print(f"Deriving process tree from net: {args.pnml}")
        tree = discover_process_tree(import_pnml(args.pnml))
    result = convert_process_tree_to_bpmn(tree, simplify=not args.no_simplify)
    _report(result)
    _write_diagram(result, args)


def cmd_info(args: argparse.Namespace) -> None:
    """
    Print element counts of a model file.

    :param args: Command-line arguments.
    :return : None.
    :return: Side-effect of printing.
    """
    if args.pnml:
        net = import_pnml(args.pnml)
        print(f"=== Petri net: {args.pnml} ===")
        print(f"Places: {len(net.places())}")
        print(f"Transitions: {len(net.transitions())}")
        print(f"  Silent: {sum(1 for t in net.transitions() if net.is_silent(t))}")
        print(f"Reset arcs: {len(net.reset_arcs())}")
        print(f"Initially marked places: {len(net.marked_places())}")
    if args.bpmn:
        diagram = import_bpmn(args.bpmn)
        print(f"=== Diagram: {args.bpmn} ===")
        print(f"Activities: {len(diagram.activities())}")
        print(f"  Subprocesses: {len(diagram.subprocesses())}")
        print(f"Gateways: {len(diagram.gateways())}")
        print(f"Events: {len(diagram.events())}")
        print(f"Flows: {len(diagram.flows())}")


def main() -> None:
    """
    Main entry point for CLI.

    :return : None.
    :return: Exit code.
    """
    parser = argparse.ArgumentParser(
        description="PN-BPMN: Petri net and BPMN conversion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    pn_parser = subparsers.add_parser("pn2bpmn", help="Convert PNML to BPMN")
    pn_parser.add_argument("--pnml", required=True, help="Path to PNML model")
    pn_parser.add_argument("--out-bpmn", help="Output BPMN file path")
    pn_parser.add_argument("--out-json", help="Output JSON file path")
    pn_parser.add_argument("--subprocesses", action="store_true", help="Discover SESE subprocesses")
    pn_parser.add_argument("--cancellation", action="store_true", help="Build cancellation regions from reset arcs")
    pn_parser.add_argument("--no-simplify", action="store_true", help="Skip diagram simplification")

    bpmn_parser = subparsers.add_parser("bpmn2pn", help="Convert BPMN to PNML")
    bpmn_parser.add_argument("--bpmn", required=True, help="Path to BPMN model")
    bpmn_parser.add_argument("--out-pnml", help="Output PNML file path")
    bpmn_parser.add_argument("--out-json", help="Output JSON file path")
    bpmn_parser.add_argument(
        "--label-mode",
        choices=[m.value for m in LabelMode],
        default=LabelMode.PREFIX_NONTASK.value,
        help="Labelling of created places and transitions (default: prefix_nontask)",
    )
    bpmn_parser.add_argument(
        "--end-event-join",
        choices=[j.value for j in EndEventJoin],
        default=EndEventJoin.AND.value,
        help="Semantics of several flows into one end event (default: and)",
    )
    bpmn_parser.add_argument("--label-flow-places", action="store_true", help="Label flow places")

    tree_parser = subparsers.add_parser("tree2bpmn", help="Convert a process tree to BPMN")
    source = tree_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--ptml", help="Path to PTML process tree")
    source.add_argument("--pnml", help="Path to block-structured PNML model")
    tree_parser.add_argument("--out-bpmn", help="Output BPMN file path")
    tree_parser.add_argument("--out-json", help="Output JSON file path")
    tree_parser.add_argument("--no-simplify", action="store_true", help="Skip diagram simplification")

    info_parser = subparsers.add_parser("info", help="Print model statistics")
    info_parser.add_argument("--pnml", help="Path to PNML model")
    info_parser.add_argument("--bpmn", help="Path to BPMN model")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "pn2bpmn":
            cmd_pn2bpmn(args)
        elif args.command == "bpmn2pn":
            cmd_bpmn2pn(args)
        elif args.command == "tree2bpmn":
            cmd_tree2bpmn(args)
        elif args.command == "info":
            cmd_info(args)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
