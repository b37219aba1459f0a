#!/usr/bin/env python3
"""
istio-autorun

Installs Istio, deploys an application with Envoy sidecars, waits until it
serves, load tests it through the ingress gateway with Fortio and/or k6,
then removes everything again.

Prerequisites:
    1. kubectl can reach the target cluster.
    2. istioctl is on PATH.
    3. No pods are deployed yet in the namespace that gets sidecar injection.
    4. Fortio and k6 are installed for the backends in use.
"""
import argparse
import logging
import sys
from typing import List, Optional, Sequence

from pydantic import ValidationError

from src.autorun.config import EXIT_CODES
from src.autorun.exceptions import AutorunError
from src.autorun.models import RunConfiguration, default_connections
from src.autorun.orchestrator import Orchestrator, print_summary, save_report
from src.autorun.preflight import run_preflight
from src.autorun.settings import Settings

logger = logging.getLogger(__name__)

# Options whose value is handed to a load tool verbatim
TOOL_PARAM_FLAGS = ("-F", "-K")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="istio-autorun",
        usage="%(prog)s [OPTION]... [APP]...",
        description="Install Istio, deploy APPs, load test them through the ingress gateway.",
        epilog="Note: the Istio BookInfo sample app will be deployed if no APP is specified.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    istio = parser.add_argument_group("Istio options")
    istio.add_argument("-f", dest="config_path", metavar="configuration",
                       help="Istio configuration file")
    istio.add_argument("-k", dest="keep_resources", action="store_true",
                       help="Keep installed resources")
    istio.add_argument("-p", dest="match_path", metavar="uri", default="",
                       help="Virtual service URI to match")
    istio.add_argument("-s", dest="secure", action="store_true",
                       help="Use HTTPS scheme on gateway")
    istio.add_argument("--profile", default="default",
                       help="Istio profile used without a configuration file (default: default)")
    istio.add_argument("-n", "--namespace", default="default",
                       help="Namespace with sidecar auto-injection (default: default)")
    istio.add_argument("-t", "--timeout", type=float, metavar="seconds",
                       help="Readiness timeout, 0 waits forever (default: from settings)")
    istio.add_argument("--ebpf-bypass", action="store_true",
                       help="Deploy the eBPF TCP/IP bypass daemonset")
    istio.add_argument("--skip-preflight", action="store_true",
                       help="Skip tool and manifest checks")

    fortio = parser.add_argument_group("Fortio options")
    fortio.add_argument("-c", dest="connections", type=int, metavar="connection",
                        help=f"Number of connections (default {default_connections()})")
    fortio.add_argument("-F", dest="fortio_params", metavar="string", default="",
                        help="Parameters passed to Fortio")

    k6 = parser.add_argument_group("k6 options")
    k6.add_argument("-u", dest="vus", type=int, metavar="vus", default=0,
                    help="Number of virtual users (default 0: skip k6)")
    k6.add_argument("-K", dest="k6_params", metavar="string", default="",
                    help="Parameters passed to Grafana k6")

    parser.add_argument("apps", nargs="*", metavar="APP", help="Manifest paths or URLs")
    return parser


def attach_tool_params(argv: Sequence[str]) -> List[str]:
    """Rewrite `-F X` and `-K X` as `-F=X` and `-K=X`.

    Tool parameters usually start with a dash (`-t 30s`, `-qps 100`), which
    argparse would otherwise take for an option of its own.
    """
    rewritten: List[str] = []
    args = iter(argv)
    for arg in args:
        if arg == "--":
            rewritten.append(arg)
            rewritten.extend(args)
            break
        if arg in TOOL_PARAM_FLAGS:
            value = next(args, None)
            rewritten.append(arg if value is None else f"{arg}={value}")
        else:
            rewritten.append(arg)
    return rewritten


def build_config(args: argparse.Namespace, settings: Settings) -> RunConfiguration:
    """Turn parsed arguments into the run configuration, resolving defaults."""
    timeout = settings.readiness_timeout if args.timeout is None else args.timeout
    values = {
        "config_path": args.config_path,
        "profile": args.profile,
        "namespace": args.namespace,
        "secure": args.secure,
        "match_path": args.match_path,
        "fortio_params": args.fortio_params,
        "vus": args.vus,
        "k6_params": args.k6_params,
        "keep_resources": args.keep_resources,
        "ebpf_bypass": args.ebpf_bypass,
        "readiness_timeout": timeout or None,
    }
    if args.connections is not None:
        values["connections"] = args.connections
    if args.apps:
        values["resources"] = args.apps
    return RunConfiguration(**values)


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(attach_tool_params(sys.argv[1:] if argv is None else argv))

    if settings is None:
        try:
            settings = Settings()
        except ValidationError as e:
            for error in e.errors():
                location = ".".join(str(part) for part in error["loc"])
                print(
                    f"{parser.prog}: error: AUTORUN_{location.upper()}: {error['msg']}",
                    file=sys.stderr,
                )
            return EXIT_CODES["usage"]

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(args, settings)
    except ValidationError as e:
        parser.print_usage(sys.stderr)
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            print(f"{parser.prog}: error: {location}: {error['msg']}", file=sys.stderr)
        return EXIT_CODES["usage"]

    try:
        if not args.skip_preflight:
            run_preflight(config, settings)
        orchestrator = Orchestrator(config, settings)
        report = orchestrator.run()
    except AutorunError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_CODES["interrupted"]

    print_summary(report)
    if settings.results_dir is not None:
        report_file = save_report(report, settings.results_dir)
        print(f"\nRun report saved to: {report_file}")

    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
