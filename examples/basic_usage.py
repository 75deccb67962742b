"""
Basic usage example of LicenseLedger.

This example issues a few licenses, hands one to a customer, terminates
another and prints the resulting ledger state.
"""

import logging
import sys
from pathlib import Path

from licledger import LedgerError, LicenseLedger


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    ledger_path = Path(__file__).parent / "example_ledger.json"
    ledger_path.unlink(missing_ok=True)

    try:
        ledger = LicenseLedger("vendor", ledger_file_path=ledger_path)

        first = ledger.issue("vendor", "Pro edition, 5 seats")
        batch = ledger.issue_batch("vendor", ["Starter edition", "Team edition"])
        logger.info("Issued %s and %s", first, batch)

        # the recipient accepts the transfer
        ledger.transfer("customer", first, "vendor", "customer")
        logger.info("License %s now owned by %s", first, ledger.get_owner(first))

        ledger.terminate("vendor", batch[0])
        for license_id in range(1, ledger.peek_next_id()):
            logger.info("License %s: %s", license_id, ledger.status(license_id).value)

        logger.info("Stats: %s", ledger.stats().model_dump())
    except LedgerError as err:
        logger.error("Rejected [%s]: %s", err.code, err.message)
        sys.exit(1)


if __name__ == "__main__":
    main()
