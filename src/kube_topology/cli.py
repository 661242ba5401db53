"""Command-line interface for kube-topology."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def show_plan(config_path: Optional[str] = None, scenario: Optional[str] = None) -> None:
    """Print the ordered resource requests of a scenario."""
    from kube_topology.core.config import load_config
    from kube_topology.plan import build_plan

    config = load_config(config_path)
    plan = build_plan(config, scenario)

    print(f"Scenario: {plan.scenario}")
    for line in plan.describe():
        print(f"  {line}")
    print(f"Exports: {', '.join(plan.exports) or '-'}")


def deploy(
    config_path: Optional[str] = None,
    scenario: Optional[str] = None,
    dry_run: bool = False,
    probe: bool = False,
) -> int:
    """Execute a scenario and print its exports."""
    from kubernetes import client

    from kube_topology.core.config import load_config
    from kube_topology.core.exceptions import TopologyError
    from kube_topology.orchestrator import EndpointProbe, PlanExecutor, default_provisioners
    from kube_topology.plan import build_plan

    async def _deploy() -> int:
        config = load_config(config_path)
        plan = build_plan(config, scenario)
        executor = PlanExecutor(default_provisioners(config, dry_run=dry_run))

        print(f"Deploying {plan.scenario} topology ({len(plan.resource_requests())} resources)...")
        try:
            result = await executor.execute(plan)
        except TopologyError as e:
            print(f"  ✗ {e}")
            return 1
        except client.ApiException as e:
            print(f"  ✗ Kubernetes API error: {e.status} {e.reason}")
            return 1

        for name, value in result.exports.items():
            print(f"  {name}: {value}")

        if probe and "url" in result.exports:
            endpoint_probe = EndpointProbe(config.probe)
            try:
                outcome = await endpoint_probe.probe(result.exports["url"])
            finally:
                await endpoint_probe.close()
            if outcome.healthy:
                print(f"  ✓ {outcome.url}: HTTP {outcome.status_code}")
            else:
                print(f"  ✗ {outcome.url}: {outcome.error or f'HTTP {outcome.status_code}'}")
                return 1

        return 0

    return asyncio.run(_deploy())


def print_kubeconfig(endpoint: str, name: str, ca_certificate: str) -> None:
    """Print the credential document for an existing cluster."""
    from kube_topology.plan import build_credential_document

    print(build_credential_document(endpoint, name, ca_certificate))


def init_project(path: str) -> None:
    """Write a sample topology configuration."""
    from kube_topology.core.config import TopologyConfig

    config_dir = Path(path) / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    config_file = config_dir / "topology.yaml"

    TopologyConfig.model_construct().to_yaml(config_file)

    print(f"Wrote sample configuration to: {config_file}")
    print()
    print("Next steps:")
    print(f"  1. Review {config_file} (cluster location, image, ports)")
    print("  2. Run: kube-topology plan")
    print("  3. Run: kube-topology up --dry-run")


def main(argv: Optional[list] = None) -> None:
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="kube-topology - Deploy a load-testing workload to GKE",
        prog="kube-topology",
    )
    parser.add_argument("--log-level", default=None, help="Log level (defaults to config log_level)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Plan command
    plan_parser = subparsers.add_parser("plan", help="Show the ordered resource requests")
    plan_parser.add_argument("--config", "-c", help="Path to configuration file")
    plan_parser.add_argument("--scenario", "-s", choices=["autoscaled", "fixed"], help="Scenario to show")

    # Up command
    up_parser = subparsers.add_parser("up", help="Create every resource of a scenario")
    up_parser.add_argument("--config", "-c", help="Path to configuration file")
    up_parser.add_argument("--scenario", "-s", choices=["autoscaled", "fixed"], help="Scenario to deploy")
    up_parser.add_argument("--dry-run", action="store_true", help="Record requests without calling any platform")
    up_parser.add_argument("--probe", action="store_true", help="Probe the exported URL over HTTP")

    # Kubeconfig command
    kubeconfig_parser = subparsers.add_parser("kubeconfig", help="Print a credential document")
    kubeconfig_parser.add_argument("--endpoint", required=True, help="Cluster endpoint address")
    kubeconfig_parser.add_argument("--name", required=True, help="Cluster name")
    kubeconfig_parser.add_argument("--ca", default="", help="Base64 cluster CA certificate")

    # Init command
    init_parser = subparsers.add_parser("init", help="Write a sample configuration")
    init_parser.add_argument("path", nargs="?", default=".", help="Project path")

    args = parser.parse_args(argv)

    if args.command in ("plan", "up"):
        from kube_topology.core.config import load_config
        from kube_topology.core.exceptions import TopologyError

        try:
            level = args.log_level or load_config(args.config).log_level
        except TopologyError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(2)
        setup_logging(level.upper())

        try:
            if args.command == "plan":
                show_plan(args.config, args.scenario)
            else:
                sys.exit(deploy(args.config, args.scenario, args.dry_run, args.probe))
        except TopologyError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(2)

    elif args.command == "kubeconfig":
        print_kubeconfig(args.endpoint, args.name, args.ca)

    elif args.command == "init":
        init_project(args.path)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
