import json
import os
import sys
import tempfile

from fastapi.testclient import TestClient

from quote_relay.core.config import Settings
from quote_relay.db.dal import QuoteStore
from quote_relay.main import create_app

"""Smoke script for the quote pipeline.

Runs GET /cotacao twice against the offline 'static' provider and prints the
responses alongside the rows that were persisted.

NOTE: This is a lightweight diagnostic and not a formal test.
"""


def run():
    with tempfile.TemporaryDirectory() as d:
        s = Settings(
            data_dir=d,
            db_path=os.path.join(d, "data.db"),
            quote_provider="static",
            persist_timeout_ms=50,
        )
        client = TestClient(create_app(settings_override=s))
        responses = [client.get("/cotacao") for _ in range(2)]
        records = QuoteStore(s.db_path).list_records()

        print(
            json.dumps(
                {
                    "responses": [
                        {"status": r.status_code, "body": r.json()} for r in responses
                    ],
                    "records": [
                        {"id": rec.id, **rec.quote.model_dump(by_alias=True)}
                        for rec in records
                    ],
                },
                indent=2,
                ensure_ascii=False,
            )
        )


if __name__ == "__main__":
    sys.path.append(os.getcwd())
    run()
