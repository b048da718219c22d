import argparse
import asyncio
import logging
import secrets
import sys
import time
from pathlib import Path
from typing import Dict, Any, List

from config.config import SystemConfig, ZKPConfig, load_config
from ecc.curve import generate_key_pair, generate_private_key, get_generator, scalar_multiply
from ecdh.key_agreement import perform_ecdh
from exceptions import AuthCoreError
from integrated_auth_system import IntegratedAuthSystem, ProverClient
from utils.utils import (
    setup_logging, save_results, PerformanceMonitor,
    create_performance_report, format_duration
)

logger = logging.getLogger(__name__)


class AuthenticationOrchestrator:
    def __init__(self, config: SystemConfig):
        self.config = config
        self.system = IntegratedAuthSystem(config)
        self.performance_monitor = PerformanceMonitor()
        self.results: Dict[str, Any] = {
            'authentications': [],
            'benchmarks': {},
            'system_metrics': {},
        }

        logger.info("Initialized Authentication Orchestrator")

    async def enroll(self, label: str) -> ProverClient:
        client = ProverClient(secrets.token_bytes(32),
                              num_nodes=self.config.zkp_config.num_nodes)
        with self.performance_monitor.start_operation("register_prover"):
            await self.system.register_prover(client.registration_message())
        logger.info(f"Enrolled prover {label}")
        return client

    async def authenticate(self, label: str, client: ProverClient,
                           kind: str = "honest") -> Dict[str, Any]:
        start_time = time.time()
        with self.performance_monitor.start_operation("authenticate", kind=kind):
            result = await client.authenticate(self.system)
        self.system.end_session(result.session_id)

        entry = {
            'prover': label,
            'kind': kind,
            'authenticated': result.authenticated,
            'rounds': result.rounds,
            'duration': time.time() - start_time,
        }
        self.results['authentications'].append(entry)
        logger.info(
            f"{label} ({kind}): {'authenticated' if result.authenticated else 'rejected'}")
        return entry

    async def run(self, num_provers: int) -> Dict[str, Any]:
        clients: List[ProverClient] = []
        for i in range(num_provers):
            clients.append(await self.enroll(f"voter_{i:03d}"))

        for i, client in enumerate(clients):
            await self.authenticate(f"voter_{i:03d}", client)

        # Wrong seed presented under a registered identity key
        if clients:
            impostor = ProverClient(secrets.token_bytes(32),
                                    num_nodes=self.config.zkp_config.num_nodes,
                                    identity_key=clients[0].identity_key)
            await self.authenticate("voter_000", impostor, kind="impostor")

        self.results['system_metrics'] = self.system.get_system_metrics()
        self.results['performance_metrics'] = self.performance_monitor.get_summary()
        return self.results


async def run_demo(config: SystemConfig, num_provers: int) -> bool:
    print("\n" + "=" * 80)
    print("VOTER AUTHENTICATION CORE DEMONSTRATION")
    print("=" * 80 + "\n")

    orchestrator = AuthenticationOrchestrator(config)
    try:
        results = await orchestrator.run(num_provers)
    except AuthCoreError as e:
        logger.error(f"Demo failed: {e.to_dict()}")
        return False

    for entry in results['authentications']:
        status = " PASSED" if entry['authenticated'] else " FAILED"
        print(f"  {entry['prover']} ({entry['kind']}): {status} "
              f"after {entry['rounds']} rounds in {format_duration(entry['duration'])}")

    honest_ok = all(e['authenticated'] for e in results['authentications']
                    if e['kind'] == 'honest')
    impostor_rejected = not any(e['authenticated'] for e in results['authentications']
                                if e['kind'] == 'impostor')

    report_path = config.results_dir / "auth_demo_report.json"
    save_results(results, report_path)
    if config.enable_benchmarking:
        monitor = orchestrator.performance_monitor
        monitor.save_metrics(config.results_dir / "auth_demo_metrics.json")
        with open(config.results_dir / "performance_report.txt", "w") as f:
            f.write(create_performance_report(monitor))

    print(f"\nFull results saved to: {report_path}")
    return honest_ok and impostor_rejected


async def run_benchmark(config: SystemConfig, iterations: int, num_provers: int) -> bool:
    monitor = PerformanceMonitor()
    G = get_generator()

    for _ in range(iterations):
        k = generate_private_key()
        with monitor.start_operation("scalar_multiply"):
            scalar_multiply(k, G)

    for _ in range(iterations):
        alice, bob = generate_key_pair(), generate_key_pair()
        with monitor.start_operation("ecdh_agreement"):
            perform_ecdh(alice.private_key, bob.public_key)

    orchestrator = AuthenticationOrchestrator(config)
    orchestrator.performance_monitor = monitor
    await orchestrator.run(num_provers)

    print(create_performance_report(monitor))
    save_results({'benchmarks': monitor.get_summary()['operations']},
                 config.results_dir / "auth_benchmark.json")
    monitor.save_metrics(config.results_dir / "auth_benchmark_metrics.json")
    return True


def main():
    parser = argparse.ArgumentParser(
        description='Voter Authentication Core (ECDH + graph-isomorphism ZKP)')
    parser.add_argument('--mode', choices=['demo', 'benchmark'], default='demo')
    parser.add_argument('--provers', type=int, default=3,
                        help='Number of provers to enroll')
    parser.add_argument('--rounds', type=int, default=None,
                        help='ZKP rounds per authentication')
    parser.add_argument('--nodes', type=int, default=None,
                        help='Nodes in each secret graph')
    parser.add_argument('--iterations', type=int, default=20,
                        help='Benchmark iterations per primitive')
    parser.add_argument('--config', type=str,
                        default='config.yaml', help='Config file path')
    parser.add_argument('--log-level', type=str, default=None)

    args = parser.parse_args()

    config = load_config(Path(args.config))
    if args.rounds is not None or args.nodes is not None:
        zkp = config.zkp_config
        config.zkp_config = ZKPConfig(
            num_nodes=args.nodes if args.nodes is not None else zkp.num_nodes,
            max_rounds=args.rounds if args.rounds is not None else zkp.max_rounds,
            round_timeout_seconds=zkp.round_timeout_seconds)
    config.ensure_directories()

    setup_logging(args.log_level or config.log_level, log_dir=config.log_dir)

    if args.mode == 'demo':
        success = asyncio.run(run_demo(config, args.provers))
    else:
        success = asyncio.run(run_benchmark(config, args.iterations, args.provers))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
