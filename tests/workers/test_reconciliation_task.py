from app.workers.tasks import reconciliation


def test_run_balance_reconciliation_task_wrapper(monkeypatch) -> None:
    async def fake_async(*, batch_size: int) -> dict[str, int]:
        return {"examined": batch_size, "drift_corrected": 0}

    monkeypatch.setattr(reconciliation, "run_balance_reconciliation_async", fake_async)

    result = reconciliation.run_balance_reconciliation(batch_size=25)
    assert result == {"examined": 25, "drift_corrected": 0}
