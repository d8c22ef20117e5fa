import pytest

from dessim.errors import InvalidRequestError, ResourceIntegrityError, SchedulingError
from dessim.process import Acquire, Hold, Process, ProcessState
from dessim.scheduler import Simulation


def test_unactivated_process_never_runs(sim):
    ran = []
    p = Process(sim, "Idle", life_cycle=lambda proc: ran.append(proc))
    sim.run(until=100)
    assert ran == []
    assert p.state is ProcessState.CREATED


def test_same_time_resumptions_follow_scheduling_order(sim):
    order = []

    def worker(p):
        yield p.hold(5.0)
        order.append(p.id)

    for _ in range(4):
        Process(sim, "W", life_cycle=worker).activate()
    sim.run()
    assert order == ["W#1", "W#2", "W#3", "W#4"]


def test_activation_delay_and_hold_move_the_clock(sim):
    seen = []

    def body(p):
        seen.append(sim.now)
        yield p.hold(2.5)
        seen.append(sim.now)

    Process(sim, "P", life_cycle=body).activate(4.0)
    sim.run()
    assert seen == [4.0, 6.5]


def test_lifecycle_states(sim, berths):
    states = {}

    def first(p):
        yield p.acquire(berths, 8)
        yield p.hold(3.0)
        p.release(berths, 8)

    def second(p):
        states["running"] = p.state
        yield p.acquire(berths, 2)

    a = Process(sim, "A", life_cycle=first)
    b = Process(sim, "B", life_cycle=second)
    assert a.state is ProcessState.CREATED
    a.activate()
    b.activate()
    assert b.state is ProcessState.SCHEDULED

    sim.run(until=1.0)
    assert states["running"] is ProcessState.RUNNING
    assert a.state is ProcessState.SCHEDULED
    assert b.state is ProcessState.WAITING
    assert sim.current is None

    sim.run()
    assert a.state is ProcessState.TERMINATED
    assert b.state is ProcessState.TERMINATED
    assert berths.held_by(b) == 2


def test_immediate_grant_continues_in_same_step(sim, berths):
    steps = []

    def body(p):
        yield p.acquire(berths, 2)
        steps.append(("after-acquire", sim.dispatched, len(sim.events)))

    Process(sim, "P", life_cycle=body).activate()
    dispatched = sim.run()
    assert dispatched == 1
    assert steps == [("after-acquire", 0, 0)]


def test_waiter_resumes_at_release_time(sim, berths):
    docked = {}

    def ship(service):
        def life(p):
            yield p.acquire(berths, 3)
            docked[p.id] = sim.now
            yield p.hold(service)
            p.release(berths, 3)
        return life

    for service in (5.0, 8.0, 1.0):
        Process(sim, "Ship", life_cycle=ship(service)).activate()
    sim.run()
    assert docked == {"Ship#1": 0.0, "Ship#2": 0.0, "Ship#3": 5.0}
    assert berths.available == 8
    assert sim.now == 8.0


def test_double_activation_is_rejected(sim):
    def body(p):
        yield p.hold(1.0)

    p = Process(sim, "P", life_cycle=body)
    p.activate()
    with pytest.raises(SchedulingError):
        p.activate()
    with pytest.raises(SchedulingError):
        Process(sim, "Q", life_cycle=body).activate(-1.0)


def test_activation_from_other_simulation_is_rejected(sim):
    other = Simulation()
    p = Process(other, "P", life_cycle=lambda proc: None)
    with pytest.raises(SchedulingError):
        sim.activate(p)


def test_negative_hold_terminates_only_that_process(sim):
    survived = []

    def bad(p):
        yield p.hold(1.0)
        yield p.hold(-2.0)
        survived.append("bad")

    def good(p):
        yield p.hold(5.0)
        survived.append("good")

    bad_p = Process(sim, "Bad", life_cycle=bad).activate()
    Process(sim, "Good", life_cycle=good).activate()
    sim.run()
    assert survived == ["good"]
    assert bad_p.state is ProcessState.TERMINATED
    assert isinstance(bad_p.error, SchedulingError)
    assert sim.failures == [(bad_p, bad_p.error)]
    assert bad_p.error.time == 1.0


def test_nan_delays_terminate_the_process_and_keep_the_clock_sane(sim):
    survived = []

    def via_hold(p):
        yield p.hold(float("nan"))
        survived.append("via_hold")

    def via_command(p):
        yield Hold(float("nan"))
        survived.append("via_command")

    def good(p):
        yield p.hold(2.0)
        survived.append("good")

    a = Process(sim, "A", life_cycle=via_hold).activate()
    b = Process(sim, "B", life_cycle=via_command).activate()
    Process(sim, "Good", life_cycle=good).activate()
    sim.run(until=5.0)
    assert survived == ["good"]
    assert sim.now == 5.0
    assert isinstance(a.error, SchedulingError)
    assert isinstance(b.error, SchedulingError)
    assert len(sim.events) == 0


def test_waiting_process_cannot_be_rescheduled_from_outside(sim, berths):
    log = []

    def hog(p):
        yield p.acquire(berths, 8)
        yield p.hold(5.0)
        p.release(berths, 8)

    def waiter(p):
        yield p.acquire(berths, 3)
        log.append((sim.now, p.held_units(berths)))
        p.release(berths, 3)

    Process(sim, "Hog", life_cycle=hog).activate()
    w = Process(sim, "Waiter", life_cycle=waiter).activate()

    def meddler(p):
        sim.schedule(w, 0.0)
        yield p.hold(1.0)

    m = Process(sim, "Meddler", life_cycle=meddler).activate(1.0)
    sim.run()
    assert log == [(5.0, 3)]
    assert isinstance(m.error, SchedulingError)
    assert [proc for proc, _ in sim.failures] == [m]
    assert berths.available == 8
    assert berths.holdings == {}


def test_activation_without_life_cycle_is_rejected(sim):
    p = Process(sim, "Empty")
    with pytest.raises(SchedulingError):
        p.activate()
    assert p.state is ProcessState.CREATED
    assert len(sim.events) == 0


def test_oversized_request_fails_fast_without_touching_pool(sim, berths):
    def greedy(p):
        yield p.acquire(berths, 9)

    p = Process(sim, "Greedy", life_cycle=greedy).activate()
    sim.run()
    assert isinstance(p.error, InvalidRequestError)
    assert berths.available == 8
    assert berths.queue_length == 0
    errors = sim.trace.errors
    assert len(errors) == 1
    assert errors[0].process_id == p.id
    assert "InvalidRequestError" in errors[0].message


def test_bad_release_is_fatal_and_pool_unchanged(sim, berths):
    def sloppy(p):
        yield p.acquire(berths, 2)
        p.release(berths, 3)

    p = Process(sim, "Sloppy", life_cycle=sloppy).activate()
    sim.run()
    assert isinstance(p.error, ResourceIntegrityError)
    assert berths.held_by(p) == 2
    assert berths.available == 6
    berths.check_invariants()


def test_rejected_command_is_raised_inside_the_process(sim, berths):
    outcomes = []

    def careful(p):
        try:
            yield Acquire(berths, 99)
        except InvalidRequestError:
            outcomes.append("rejected")
        yield p.hold(1.0)
        outcomes.append("continued")

    p = Process(sim, "Careful", life_cycle=careful).activate()
    sim.run()
    assert outcomes == ["rejected", "continued"]
    assert p.error is None
    assert sim.failures == []


def test_yielding_something_else_terminates_the_process(sim):
    def odd(p):
        yield 42

    p = Process(sim, "Odd", life_cycle=odd).activate()
    sim.run()
    assert isinstance(p.error, SchedulingError)
    assert p.state is ProcessState.TERMINATED


def test_plain_function_life_cycle_runs_once(sim):
    ran = []
    p = Process(sim, "Once", life_cycle=lambda proc: ran.append(sim.now)).activate(3.0)
    sim.run()
    assert ran == [3.0]
    assert p.state is ProcessState.TERMINATED


def test_other_exceptions_propagate(sim):
    def broken(p):
        yield p.hold(1.0)
        raise KeyError("model bug")

    Process(sim, "Broken", life_cycle=broken).activate()
    with pytest.raises(KeyError):
        sim.run()
    assert sim.current is None


def test_deadline_runs_events_at_stop_time_and_parks_the_rest(sim):
    ticks = []

    def ticker(p):
        while True:
            ticks.append(sim.now)
            yield p.hold(5.0)

    p = Process(sim, "Ticker", life_cycle=ticker).activate()
    sim.run(until=10.0)
    assert ticks == [0.0, 5.0, 10.0]
    assert sim.now == 10.0
    assert p.state is ProcessState.SCHEDULED
    assert sim.suspended == [p]


def test_clock_moves_to_deadline_when_events_run_out(sim):
    Process(sim, "P", life_cycle=lambda proc: None).activate(1.0)
    sim.run(until=50.0)
    assert sim.now == 50.0


def test_stop_condition_is_checked_before_each_pop(sim):
    ticks = []

    def ticker(p):
        while True:
            ticks.append(sim.now)
            yield p.hold(1.0)

    Process(sim, "Ticker", life_cycle=ticker).activate()
    sim.run(stop_condition=lambda s: len(ticks) >= 3)
    assert ticks == [0.0, 1.0, 2.0]
    assert len(sim.events) == 1


def test_default_deadline_comes_from_config():
    from dessim.config import ExperimentConfig
    sim = Simulation(ExperimentConfig(stop_time=7.0))
    ticks = []

    def ticker(p):
        while True:
            ticks.append(sim.now)
            yield p.hold(3.0)

    Process(sim, "Ticker", life_cycle=ticker).activate()
    sim.run()
    assert ticks == [0.0, 3.0, 6.0]
    assert sim.now == 7.0


def test_run_after_finish_is_an_error(sim):
    sim.run()
    sim.finish()
    with pytest.raises(RuntimeError):
        sim.run()


def test_finish_flushes_the_trace(sim):
    def body(p):
        p.trace_note("arrives")
        yield p.hold(1.0)

    Process(sim, "Ship", life_cycle=body).activate()
    sim.run()
    records = sim.finish()
    assert [(r.process_id, r.message) for r in records] == [("Ship#1", "arrives")]
    assert len(sim.trace) == 0
    assert sim.finish() == []


def test_observers_see_monotonic_time(sim, berths):
    seen = []

    def ship(p):
        yield p.hold(len(sim.processes) % 3)
        yield p.acquire(berths, 3)
        yield p.hold(2.0)
        p.release(berths, 3)

    for _ in range(10):
        Process(sim, "Ship", life_cycle=ship).activate()

    def check(s):
        seen.append(s.now)
        berths.check_invariants()

    sim.add_observer(check)
    sim.run()
    assert seen == sorted(seen)
    assert berths.available == 8
    assert all(p.is_terminated for p in sim.processes)


def test_summary_counts(sim, berths):
    def body(p):
        yield p.acquire(berths, 8)

    Process(sim, "A", life_cycle=body).activate()
    Process(sim, "B", life_cycle=body).activate()
    sim.run()
    out = sim.summary()
    assert out["processes"] == 2
    assert out["terminated"] == 1
    assert out["suspended"] == 1
    assert out["pools"]["Berths"]["queue_length"] == 1
