"""Tests for batching and sending wire records."""

import json
import logging
import math
from unittest.mock import MagicMock, patch

import pytest
import requests

from blueflood.dispatcher import BatchDispatcher, DispatchOutcome
from blueflood.measurement import WireRecord

SERVER = "http://localhost:9090/v2.0/tenant/ingest"


def _records(n):
    return [WireRecord(f"staples.test.m{i}", i, 172800, 1000 + i) for i in range(n)]


def _response(status):
    response = MagicMock()
    response.status_code = status
    return response


class TestAccumulate:
    """Batch boundaries depend only on rollup_num."""

    @pytest.mark.parametrize("m,n", [
        (0, 5), (1, 5), (4, 5), (5, 5), (6, 5), (10, 5), (11, 5), (3, 1), (250, 100),
    ])
    def test_batch_sizes(self, recorder, m, n):
        sent = recorder.accumulate(_records(m), n, SERVER, 0)

        sizes = [len(batch) for batch, _, _ in recorder.sent]
        assert sent == len(sizes) == math.ceil(m / n)
        assert all(size == n for size in sizes[:m // n])
        if m % n:
            assert sizes[-1] == m % n
        assert all(1 <= size <= n for size in sizes)

    def test_order_preserved(self, recorder):
        records = _records(7)
        recorder.accumulate(records, 3, SERVER, 0)
        flattened = [r for batch, _, _ in recorder.sent for r in batch]
        assert flattened == records

    def test_server_and_timeout_passed_through(self, recorder):
        recorder.accumulate(_records(2), 10, SERVER, 7)
        assert recorder.sent[0][1:] == (SERVER, 7)

    def test_consumes_iterators(self, recorder):
        recorder.accumulate(iter(_records(3)), 2, SERVER, 0)
        assert [len(b) for b, _, _ in recorder.sent] == [2, 1]

    def test_rejects_zero_rollup(self, recorder):
        with pytest.raises(ValueError):
            recorder.accumulate(_records(1), 0, SERVER, 0)

    def test_batches_are_independent(self, recorder):
        recorder.accumulate(_records(4), 2, SERVER, 0)
        first, second = recorder.sent[0][0], recorder.sent[1][0]
        assert first is not second
        assert {r.metric_name for r in first}.isdisjoint(r.metric_name for r in second)


class TestDispatch:
    """Outcome of a single ingest request."""

    @pytest.fixture
    def dispatcher(self, inline_executor):
        return BatchDispatcher(executor=inline_executor)

    @patch("blueflood.dispatcher.requests.post")
    def test_posts_json_batch(self, mock_post, dispatcher):
        mock_post.return_value = _response(200)
        batch = _records(2)

        outcome = dispatcher.dispatch(batch, SERVER, 0)

        assert outcome is DispatchOutcome.INGESTED
        args, kwargs = mock_post.call_args
        assert args == (SERVER,)
        assert kwargs["headers"] == {"Content-Type": "application/json"}
        assert kwargs["timeout"] is None
        assert json.loads(kwargs["data"]) == [
            {"collectionTime": 1000, "ttlInSeconds": 172800, "metricValue": 0, "metricName": "staples.test.m0"},
            {"collectionTime": 1001, "ttlInSeconds": 172800, "metricValue": 1, "metricName": "staples.test.m1"},
        ]
        mock_post.return_value.close.assert_called_once()

    @patch("blueflood.dispatcher.requests.post")
    def test_timeout_applied(self, mock_post, dispatcher):
        mock_post.return_value = _response(200)
        dispatcher.dispatch(_records(1), SERVER, 10)
        assert mock_post.call_args.kwargs["timeout"] == 10

    @patch("blueflood.dispatcher.requests.post")
    def test_non_200_logged(self, mock_post, dispatcher, caplog):
        mock_post.return_value = _response(500)
        with caplog.at_level(logging.WARNING, logger="blueflood.dispatcher"):
            outcome = dispatcher.dispatch(_records(1), SERVER, 0)
        assert outcome is DispatchOutcome.REJECTED
        assert "status: 500" in caplog.text

    @patch("blueflood.dispatcher.requests.post")
    def test_other_2xx_is_rejected(self, mock_post, dispatcher):
        mock_post.return_value = _response(202)
        assert dispatcher.dispatch(_records(1), SERVER, 0) is DispatchOutcome.REJECTED

    @pytest.mark.parametrize("error", [
        requests.ConnectionError("connection refused"),
        requests.Timeout("timed out"),
        requests.exceptions.MissingSchema("no scheme"),
    ])
    def test_transport_errors_logged(self, dispatcher, caplog, error):
        with patch("blueflood.dispatcher.requests.post", side_effect=error):
            with caplog.at_level(logging.WARNING, logger="blueflood.dispatcher"):
                outcome = dispatcher.dispatch(_records(1), SERVER, 0)
        assert outcome is DispatchOutcome.UNDELIVERED
        assert "failed" in caplog.text

    @patch("blueflood.dispatcher.requests.post")
    def test_unserializable_batch_not_sent(self, mock_post, dispatcher):
        batch = [WireRecord("a", float("nan"), 60, 1)]
        assert dispatcher.dispatch(batch, SERVER, 0) is DispatchOutcome.UNDELIVERED
        mock_post.assert_not_called()

    @patch("blueflood.dispatcher.requests.post")
    def test_injected_logger(self, mock_post, inline_executor):
        mock_post.return_value = _response(503)
        log = MagicMock()
        BatchDispatcher(executor=inline_executor, logger=log).dispatch(_records(1), SERVER, 0)
        log.warning.assert_called_once()

    def test_crash_in_task_is_logged(self, inline_executor, caplog):
        dispatcher = BatchDispatcher(executor=inline_executor)
        with patch.object(dispatcher, "dispatch", side_effect=RuntimeError("boom")):
            with caplog.at_level(logging.ERROR, logger="blueflood.dispatcher"):
                dispatcher.submit(_records(1), SERVER, 0)
        assert "boom" in caplog.text


class TestThreadPool:
    """Batches go out on worker threads."""

    @patch("blueflood.dispatcher.requests.post")
    def test_all_batches_sent_before_close_returns(self, mock_post):
        mock_post.return_value = _response(200)
        dispatcher = BatchDispatcher(max_workers=2)

        dispatcher.accumulate(_records(9), 2, SERVER, 0)
        dispatcher.close(wait=True)

        assert mock_post.call_count == 5
        sizes = sorted(len(json.loads(c.kwargs["data"])) for c in mock_post.call_args_list)
        assert sizes == [1, 2, 2, 2, 2]

    @patch("blueflood.dispatcher.requests.post")
    def test_one_failure_does_not_stop_others(self, mock_post):
        mock_post.side_effect = [requests.ConnectionError("down"), _response(200), _response(500)]
        dispatcher = BatchDispatcher(max_workers=1)

        dispatcher.accumulate(_records(3), 1, SERVER, 0)
        dispatcher.close(wait=True)

        assert mock_post.call_count == 3

    def test_close_leaves_injected_executor_alone(self, inline_executor):
        executor = MagicMock(wraps=inline_executor)
        BatchDispatcher(executor=executor).close()
        executor.shutdown.assert_not_called()
