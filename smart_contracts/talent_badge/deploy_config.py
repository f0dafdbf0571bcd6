"""Deploy configuration for the TalentBadge smart contract.

Compiles are expected under smart_contracts/artifacts/talent_badge/
(``algokit compile py``). Uses a widened validity window and retries
on "txn dead: round outside of range" errors from public nodes.
"""

import logging
import time
from pathlib import Path

import algokit_utils
from algokit_utils.models.transaction import SendParams

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 5
INITIAL_FUNDING_ALGO = 1

APP_SPEC_PATH = (
    Path(__file__).resolve().parent.parent / "artifacts" / "talent_badge" / "TalentBadge.arc56.json"
)


def is_txn_dead(exc: Exception) -> bool:
    msg = str(exc).lower()
    return "txn dead" in msg or "round outside of" in msg


def with_retry(action, label: str):
    """Run ``action`` and retry it while the node reports a dead txn."""
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            return action()
        except Exception as exc:
            if is_txn_dead(exc) and attempt < MAX_RETRIES:
                logger.warning(
                    "%s attempt %d hit 'txn dead', retrying in %ds: %s",
                    label, attempt, RETRY_DELAY_SECONDS, exc,
                )
                time.sleep(RETRY_DELAY_SECONDS)
            else:
                logger.error("%s failed: %s", label, exc)
                raise
    raise RuntimeError(f"{label} did not run")


def deploy(app_spec_path: Path = APP_SPEC_PATH) -> int:
    """Deploy TalentBadge and return its app id."""
    algorand = algokit_utils.AlgorandClient.from_environment()
    algorand.set_default_validity_window(1000)

    deployer_ = algorand.account.from_environment("DEPLOYER")
    logger.info("Deployer address: %s", deployer_.address)

    factory = algorand.client.get_app_factory(
        app_spec=app_spec_path.read_text(),
        default_sender=deployer_.address,
    )
    send_params = SendParams(max_rounds_to_wait=1000, populate_app_call_resources=True)

    app_client, result = with_retry(
        lambda: factory.deploy(
            on_update=algokit_utils.OnUpdate.AppendApp,
            on_schema_break=algokit_utils.OnSchemaBreak.AppendApp,
            send_params=send_params,
        ),
        "Deploy",
    )
    logger.info("Deploy succeeded: %s (app_id=%d)", app_client.app_name, app_client.app_id)

    # ── Fund app for Box MBR ─────────────────────────────────────────
    if result.operation_performed in [
        algokit_utils.OperationPerformed.Create,
        algokit_utils.OperationPerformed.Replace,
    ]:
        logger.info("Funding app %d with %d ALGO for Box MBR…", app_client.app_id, INITIAL_FUNDING_ALGO)
        with_retry(
            lambda: algorand.send.payment(
                algokit_utils.PaymentParams(
                    amount=algokit_utils.AlgoAmount(algo=INITIAL_FUNDING_ALGO),
                    sender=deployer_.address,
                    receiver=app_client.app_address,
                    validity_window=1000,
                ),
                send_params=send_params,
            ),
            "Funding",
        )

    logger.info(
        "Deployed %s (app_id=%d) at %s; set LEDGER_APP_ID=%d",
        app_client.app_name, app_client.app_id, app_client.app_address, app_client.app_id,
    )
    return app_client.app_id


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    deploy()
