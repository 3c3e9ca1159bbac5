"""
Tests for single-use callbacks, delivery contexts and the dispatcher.
"""

import asyncio
import threading

from helpers import Collector

from httpbridge.contexts import ImmediateContext, LoopContext, QueueContext
from httpbridge.dispatcher import CallbackDispatcher, PendingCallback, unpacked
from httpbridge.normalizer import rejected


def test_pending_callback_fires_once():
    collector = Collector()
    pending = PendingCallback(collector, label="GET https://x.io")
    outcome = rejected("boom")

    assert pending.bound
    assert pending.fire(outcome) is True
    assert pending.fire(outcome) is False
    assert not pending.bound
    assert collector.outcomes == [outcome]


def test_callback_exception_does_not_escape():
    def explode(outcome):
        raise RuntimeError("caller bug")

    pending = PendingCallback(explode)
    assert pending.fire(rejected("x")) is True
    assert not pending.bound


def test_unpacked_passes_four_fields():
    seen = []
    callback = unpacked(lambda ok, code, body, error: seen.append((ok, code, body, error)))
    callback(rejected("bad url"))
    assert seen == [(False, 0, "", "bad url")]


def test_dispatcher_skips_missing_callback():
    context = QueueContext()
    delivered = CallbackDispatcher().deliver(rejected("x"), PendingCallback(None), context)

    assert delivered is False
    assert context.pending() == 0


def test_dispatcher_runs_on_target_context_only_when_pumped():
    collector = Collector()
    context = QueueContext()
    outcome = rejected("x")

    assert CallbackDispatcher().deliver(outcome, PendingCallback(collector), context)
    assert collector.outcomes == []

    assert context.run_pending() == 1
    assert collector.outcomes == [outcome]
    assert collector.threads == [threading.get_ident()]


def test_delivery_from_worker_thread_lands_on_owner_thread():
    collector = Collector()
    context = QueueContext()
    dispatcher = CallbackDispatcher()

    worker = threading.Thread(
        target=lambda: dispatcher.deliver(rejected("x"), PendingCallback(collector), context))
    worker.start()
    worker.join()

    context.run_pending(timeout=1.0)
    assert collector.threads == [context.owner]


def test_immediate_context_runs_inline():
    collector = Collector()
    CallbackDispatcher().deliver(rejected("x"), PendingCallback(collector), ImmediateContext())
    assert len(collector.outcomes) == 1


def test_queue_context_respects_max_items_and_timeout():
    context = QueueContext()
    ran = []
    for i in range(3):
        context.call_soon(lambda i=i: ran.append(i))

    assert context.run_pending(max_items=2) == 2
    assert ran == [0, 1]
    assert context.run_pending() == 1
    assert context.run_pending(timeout=0.01) == 0


def test_loop_context_runs_on_event_loop_thread():
    async def scenario():
        loop = asyncio.get_running_loop()
        done = loop.create_future()
        loop_thread = threading.get_ident()

        def callback(outcome):
            done.set_result((threading.get_ident(), outcome))

        pending = PendingCallback(callback)
        worker = threading.Thread(
            target=lambda: CallbackDispatcher().deliver(rejected("x"), pending, LoopContext(loop)))
        worker.start()
        thread_id, outcome = await asyncio.wait_for(done, timeout=5.0)
        worker.join()
        return loop_thread, thread_id, outcome

    loop_thread, thread_id, outcome = asyncio.run(scenario())
    assert thread_id == loop_thread
    assert outcome.error_message == "x"
