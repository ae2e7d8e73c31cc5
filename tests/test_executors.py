"""
Unit tests for the step executors.

Tests cover:
- Assert polling, mismatch messages and gateway errors
- Create naming, labelling and catalog lookups
- Change selection, phase conditions and batch aborts
- Delete ordering and not-found handling
- Payload checks shared by all executors
"""

from unittest.mock import MagicMock

import pytest

from conftest import FIXED_NOW, RecordingSleeper, fixed_clock, make_node, make_pod
from nodus.errors import (
    ClassNotFoundError,
    CountMismatchError,
    GatewayError,
    InsufficientCountError,
    MissingPayloadError,
    NoOpTransitionError,
    NotFoundError,
    UnsupportedObjectError,
)
from nodus.modules.executor import (
    AssertExecutor,
    ChangeExecutor,
    CreateExecutor,
    DeleteExecutor,
    condition_status,
)
from nodus.modules.scenario import (
    AssertStep,
    ChangeStep,
    CreateStep,
    DeleteStep,
    ObjectKind,
    PodPhase,
    Step,
    Verb,
)


def pods_of(gateway, class_name=None, phase=None):
    label = f"np.class={class_name}" if class_name else ""
    field = f"status.phase={phase}" if phase else ""
    return gateway.list_pods("default", label, field)


@pytest.fixture
def create(gateway, catalog):
    return CreateExecutor(gateway, catalog)


@pytest.fixture
def change(gateway, catalog):
    return ChangeExecutor(gateway, catalog, now=fixed_clock)


@pytest.fixture
def delete(gateway, catalog):
    return DeleteExecutor(gateway, catalog)


@pytest.fixture
def assert_(gateway, catalog, sleeper):
    return AssertExecutor(gateway, catalog, sleep=sleeper)


# =============================================================================
# Payload checks
# =============================================================================


class TestPayloadChecks:
    def test_missing_payload(self, create):
        with pytest.raises(MissingPayloadError, match="there is no create in this step"):
            create.execute(Step(verb=Verb.CREATE))

    def test_payload_for_another_verb(self, create):
        step = Step(verb=Verb.CREATE, payload=DeleteStep(ObjectKind.POD, "worker", 1))
        with pytest.raises(MissingPayloadError):
            create.execute(step)

    def test_matching_payload_runs(self, create, gateway):
        create.execute(Step.of(CreateStep(ObjectKind.POD, "worker", 1)))
        assert len(pods_of(gateway)) == 1


# =============================================================================
# Assert
# =============================================================================


class TestAssertExecutor:
    def test_nodes_match_first_poll(self, assert_, gateway, sleeper):
        gateway.register_fake_node("worker-0", "worker", {}, {})
        gateway.register_fake_node("gpu-0", "gpu", {}, {})

        assert_.run(AssertStep(object=ObjectKind.NODE, count=1, class_name="worker", within=5))
        assert_.run(AssertStep(object=ObjectKind.NODE, count=2, within=5))
        assert sleeper.calls == []

    def test_pods_filtered_by_phase(self, assert_, create, change):
        create.run(CreateStep(ObjectKind.POD, "worker", 3))
        change.run(ChangeStep(ObjectKind.POD, "worker", 1, PodPhase.PENDING, PodPhase.RUNNING))

        assert_.run(AssertStep(ObjectKind.POD, 2, "worker", PodPhase.PENDING))
        assert_.run(AssertStep(ObjectKind.POD, 1, "worker", PodPhase.RUNNING))
        assert_.run(AssertStep(ObjectKind.POD, 3, "worker"))

    def test_empty_result_is_a_mismatch(self, assert_, sleeper):
        with pytest.raises(CountMismatchError) as exc_info:
            assert_.run(AssertStep(object=ObjectKind.POD, count=2, class_name="worker", within=3))

        assert exc_info.value.observed == 0
        assert exc_info.value.expected == 2
        assert sleeper.calls == [1.0, 1.0]

    def test_zero_expected_on_empty_cluster(self, assert_):
        assert_.run(AssertStep(object=ObjectKind.POD, count=0, class_name="worker"))

    @pytest.mark.parametrize("k,budget,passes", [(1, 1, True), (3, 5, True), (5, 5, True), (6, 5, False)])
    def test_converges_on_poll_k(self, catalog, k, budget, passes):
        """The k-th poll is the first to see the expected count."""
        gateway = MagicMock()
        answers = [[make_pod("a")]] * (k - 1) + [[make_pod("a"), make_pod("b")]] * 10
        gateway.list_pods.side_effect = answers
        sleeper = RecordingSleeper()
        executor = AssertExecutor(gateway, catalog, sleep=sleeper)
        step = AssertStep(object=ObjectKind.POD, count=2, class_name="worker", within=budget)

        if passes:
            executor.run(step)
            assert gateway.list_pods.call_count == k
        else:
            with pytest.raises(CountMismatchError) as exc_info:
                executor.run(step)
            assert exc_info.value.observed == 1
            assert gateway.list_pods.call_count == budget
        assert len(sleeper.calls) == min(k, budget) - 1

    def test_short_budget_polls_once(self, assert_, gateway, sleeper):
        wrapped = MagicMock(wraps=gateway)
        executor = AssertExecutor(wrapped, assert_.catalog, sleep=sleeper)

        with pytest.raises(CountMismatchError):
            executor.run(AssertStep(object=ObjectKind.NODE, count=1, within=0.5))

        assert wrapped.list_nodes.call_count == 1
        assert sleeper.calls == []

    def test_poll_interval_is_used(self, gateway, catalog):
        sleeper = RecordingSleeper()
        executor = AssertExecutor(gateway, catalog, poll_interval=0.5, sleep=sleeper)

        with pytest.raises(CountMismatchError):
            executor.run(AssertStep(object=ObjectKind.NODE, count=1, within=2))

        assert sleeper.calls == [0.5, 0.5, 0.5]

    def test_selectors_sent_to_gateway(self, catalog):
        gateway = MagicMock()
        gateway.list_pods.return_value = []
        executor = AssertExecutor(gateway, catalog, namespace="ns", sleep=RecordingSleeper())

        executor.run(AssertStep(ObjectKind.POD, 0, "worker", PodPhase.RUNNING))

        gateway.list_pods.assert_called_once_with("ns", "np.class=worker", "status.phase=Running")

    def test_node_phase_is_ignored(self, catalog):
        gateway = MagicMock()
        gateway.list_nodes.return_value = [make_node("n")]
        executor = AssertExecutor(gateway, catalog, sleep=RecordingSleeper())

        executor.run(AssertStep(ObjectKind.NODE, 1, "worker", PodPhase.RUNNING))

        gateway.list_nodes.assert_called_once_with("np.class=worker")

    def test_gateway_error_is_retried(self, catalog):
        gateway = MagicMock()
        gateway.list_nodes.side_effect = [GatewayError("boom"), [make_node("n")]]
        sleeper = RecordingSleeper()

        AssertExecutor(gateway, catalog, sleep=sleeper).run(
            AssertStep(object=ObjectKind.NODE, count=1, within=3)
        )

        assert gateway.list_nodes.call_count == 2
        assert sleeper.calls == [1.0]

    def test_gateway_error_on_last_poll_is_raised(self, catalog):
        gateway = MagicMock()
        gateway.list_nodes.side_effect = GatewayError("list nodes failed: 503", status=503)

        with pytest.raises(GatewayError) as exc_info:
            AssertExecutor(gateway, catalog, sleep=RecordingSleeper()).run(
                AssertStep(object=ObjectKind.NODE, count=1, within=2)
            )

        assert exc_info.value.status == 503

    def test_unsupported_object(self, assert_):
        with pytest.raises(UnsupportedObjectError):
            assert_.run(AssertStep(object="service", count=1))

    @pytest.mark.parametrize(
        "step,message",
        [
            (AssertStep(ObjectKind.NODE, 2, "worker"), "found 0 nodes of class worker, but 2 expected"),
            (AssertStep(ObjectKind.NODE, 2), "found 0 nodes but 2 expected"),
            (
                AssertStep(ObjectKind.POD, 2, "worker", PodPhase.RUNNING),
                "found 0 pods of class worker and in phase Running, but 2 expected",
            ),
            (AssertStep(ObjectKind.POD, 2, None, PodPhase.FAILED), "found 0 pods in phase Failed, but 2 expected"),
            (AssertStep(ObjectKind.POD, 2), "found 0 pods, but 2 expected"),
        ],
    )
    def test_mismatch_messages(self, assert_, step, message):
        with pytest.raises(CountMismatchError) as exc_info:
            assert_.run(step)
        assert str(exc_info.value) == message


# =============================================================================
# Create
# =============================================================================


class TestCreateExecutor:
    def test_create_pods(self, create, gateway):
        create.run(CreateStep(ObjectKind.POD, "worker", 3))

        pods = pods_of(gateway, "worker")
        assert [p.metadata.name for p in pods] == ["worker-0", "worker-1", "worker-2"]
        assert pods[0].metadata.labels == {"np.class": "worker", "app": "load"}
        assert gateway.pod_spec("default", "worker-0") == {
            "containers": [{"name": "main", "image": "busybox"}]
        }

    def test_class_label_added_when_template_lacks_it(self, create, gateway):
        create.run(CreateStep(ObjectKind.POD, "batch", 2))
        assert len(pods_of(gateway, "batch")) == 2
        assert pods_of(gateway, "batch")[0].metadata.labels == {"app": "batch", "np.class": "batch"}

    def test_create_nodes(self, create, gateway):
        create.run(CreateStep(ObjectKind.NODE, "worker", 2))

        nodes = gateway.list_nodes("np.class=worker")
        assert [n.metadata.name for n in nodes] == ["worker-0", "worker-1"]
        assert nodes[0].metadata.labels["tier"] == "compute"
        assert nodes[0].status.capacity == {"cpu": "4", "memory": "8Gi", "pods": "110"}

    def test_zero_count_is_a_no_op(self, create, gateway):
        create.run(CreateStep(ObjectKind.POD, "worker", 0))
        assert pods_of(gateway) == []

    @pytest.mark.parametrize("kind", [ObjectKind.POD, ObjectKind.NODE])
    def test_unknown_class_writes_nothing(self, catalog, kind):
        gateway = MagicMock()

        with pytest.raises(ClassNotFoundError, match="class: ghost not found"):
            CreateExecutor(gateway, catalog).run(CreateStep(kind, "ghost", 3))

        gateway.create_pod.assert_not_called()
        gateway.register_fake_node.assert_not_called()

    def test_class_namespaces_are_per_kind(self, create):
        # "batch" is a pod class only
        with pytest.raises(ClassNotFoundError, match="node config"):
            create.run(CreateStep(ObjectKind.NODE, "batch", 1))

    def test_failure_aborts_and_keeps_earlier_pods(self, gateway, catalog):
        wrapped = MagicMock(wraps=gateway)
        calls = []

        def create_pod(namespace, name, labels, spec):
            calls.append(name)
            if name == "worker-1":
                raise GatewayError("create pod worker-1 failed: 500 Internal", status=500)
            return gateway.create_pod(namespace, name, labels, spec)

        wrapped.create_pod.side_effect = create_pod

        with pytest.raises(GatewayError, match=r"worker-1 of class: worker \(index 1\)") as exc_info:
            CreateExecutor(wrapped, catalog).run(CreateStep(ObjectKind.POD, "worker", 3))

        assert exc_info.value.status == 500
        assert calls == ["worker-0", "worker-1"]
        assert [p.metadata.name for p in pods_of(gateway)] == ["worker-0"]

    def test_second_create_collides(self, create):
        create.run(CreateStep(ObjectKind.NODE, "worker", 1))
        with pytest.raises(GatewayError, match="index 0"):
            create.run(CreateStep(ObjectKind.NODE, "worker", 1))


# =============================================================================
# Change
# =============================================================================


class TestConditionStatus:
    @pytest.mark.parametrize(
        "src,dst,expected",
        [
            (PodPhase.PENDING, PodPhase.RUNNING, "True"),
            (PodPhase.RUNNING, PodPhase.SUCCEEDED, "False"),
            (PodPhase.PENDING, PodPhase.FAILED, "False"),
            (PodPhase.RUNNING, PodPhase.PENDING, "Unknown"),
            (PodPhase.PENDING, PodPhase.UNKNOWN, "Unknown"),
        ],
    )
    def test_rules(self, src, dst, expected):
        assert condition_status(src, dst) == expected


class TestChangeExecutor:
    def test_pending_to_running(self, create, change, gateway):
        create.run(CreateStep(ObjectKind.POD, "worker", 3))

        change.run(ChangeStep(ObjectKind.POD, "worker", 2, PodPhase.PENDING, PodPhase.RUNNING))

        running = pods_of(gateway, "worker", "Running")
        assert [p.metadata.name for p in running] == ["worker-0", "worker-1"]
        assert len(pods_of(gateway, "worker", "Pending")) == 1
        condition = running[0].status.conditions[-1]
        assert condition.type == "Running"
        assert condition.status == "True"
        assert condition.last_transition_time == FIXED_NOW

    def test_conditions_accumulate(self, create, change, gateway):
        create.run(CreateStep(ObjectKind.POD, "worker", 1))
        change.run(ChangeStep(ObjectKind.POD, "worker", 1, PodPhase.PENDING, PodPhase.RUNNING))
        change.run(ChangeStep(ObjectKind.POD, "worker", 1, PodPhase.RUNNING, PodPhase.SUCCEEDED))

        [pod] = pods_of(gateway, "worker", "Succeeded")
        assert [(c.type, c.status) for c in pod.status.conditions] == [
            ("Running", "True"),
            ("Succeeded", "False"),
        ]

    def test_same_phase_fails_before_query(self, catalog):
        gateway = MagicMock()
        with pytest.raises(NoOpTransitionError, match="same phase"):
            ChangeExecutor(gateway, catalog).run(
                ChangeStep(ObjectKind.POD, "worker", 1, PodPhase.RUNNING, PodPhase.RUNNING)
            )
        gateway.list_pods.assert_not_called()

    def test_nodes_are_unsupported(self, catalog):
        gateway = MagicMock()
        with pytest.raises(UnsupportedObjectError, match="change object: node not supported"):
            ChangeExecutor(gateway, catalog).run(
                ChangeStep(ObjectKind.NODE, "worker", 1, PodPhase.PENDING, PodPhase.RUNNING)
            )
        gateway.list_pods.assert_not_called()

    def test_no_pods_in_source_phase(self, change):
        with pytest.raises(NotFoundError, match="found 0 pods of class: worker and phase: Pending"):
            change.run(ChangeStep(ObjectKind.POD, "worker", 1, PodPhase.PENDING, PodPhase.RUNNING))

    def test_not_enough_pods_issues_no_updates(self, catalog):
        gateway = MagicMock()
        gateway.list_pods.return_value = [make_pod("worker-0"), make_pod("worker-1")]

        with pytest.raises(InsufficientCountError) as exc_info:
            ChangeExecutor(gateway, catalog).run(
                ChangeStep(ObjectKind.POD, "worker", 3, PodPhase.PENDING, PodPhase.RUNNING)
            )

        assert not isinstance(exc_info.value, NotFoundError)
        assert exc_info.value.found == 2
        assert exc_info.value.required == 3
        gateway.update_pod_status.assert_not_called()

    def test_takes_pods_in_returned_order(self, catalog):
        gateway = MagicMock()
        gateway.list_pods.return_value = [make_pod("z"), make_pod("a"), make_pod("m")]

        ChangeExecutor(gateway, catalog, namespace="ns", now=fixed_clock).run(
            ChangeStep(ObjectKind.POD, "worker", 2, PodPhase.PENDING, PodPhase.FAILED)
        )

        gateway.list_pods.assert_called_once_with("ns", "np.class=worker", "status.phase=Pending")
        updated = [c.args[1] for c in gateway.update_pod_status.call_args_list]
        assert [p.metadata.name for p in updated] == ["z", "a"]
        assert all(p.status.phase == "Failed" for p in updated)
        assert updated[0].status.conditions[-1].status == "False"

    def test_update_failure_aborts_batch(self, catalog):
        gateway = MagicMock()
        gateway.list_pods.return_value = [make_pod("a"), make_pod("b"), make_pod("c")]
        gateway.update_pod_status.side_effect = [None, GatewayError("conflict", status=409), None]

        with pytest.raises(GatewayError, match="could not change pod b to Running") as exc_info:
            ChangeExecutor(gateway, catalog).run(
                ChangeStep(ObjectKind.POD, "worker", 3, PodPhase.PENDING, PodPhase.RUNNING)
            )

        assert exc_info.value.status == 409
        assert gateway.update_pod_status.call_count == 2


# =============================================================================
# Delete
# =============================================================================


class TestDeleteExecutor:
    def test_delete_pods_in_order(self, create, delete, gateway):
        create.run(CreateStep(ObjectKind.POD, "worker", 3))

        delete.run(DeleteStep(ObjectKind.POD, "worker", 2))

        assert [p.metadata.name for p in pods_of(gateway)] == ["worker-2"]

    def test_delete_ignores_phase(self, create, change, delete, gateway):
        create.run(CreateStep(ObjectKind.POD, "worker", 2))
        change.run(ChangeStep(ObjectKind.POD, "worker", 1, PodPhase.PENDING, PodPhase.RUNNING))

        delete.run(DeleteStep(ObjectKind.POD, "worker", 2))

        assert pods_of(gateway) == []

    def test_delete_nodes(self, create, delete, gateway):
        create.run(CreateStep(ObjectKind.NODE, "worker", 2))
        create.run(CreateStep(ObjectKind.NODE, "gpu", 1))

        delete.run(DeleteStep(ObjectKind.NODE, "worker", 2))

        assert [n.metadata.name for n in gateway.list_nodes()] == ["gpu-0"]

    def test_nothing_found(self, delete):
        with pytest.raises(NotFoundError, match="no pods found for class: worker"):
            delete.run(DeleteStep(ObjectKind.POD, "worker", 1))

    def test_zero_count_on_empty_cluster(self, delete):
        delete.run(DeleteStep(ObjectKind.NODE, "worker", 0))

    def test_not_enough(self, create, delete, gateway):
        create.run(CreateStep(ObjectKind.NODE, "worker", 1))

        with pytest.raises(InsufficientCountError, match="found 1 nodes of class: worker, but expected: 2"):
            delete.run(DeleteStep(ObjectKind.NODE, "worker", 2))

        assert len(gateway.list_nodes()) == 1

    def test_query_failure_is_a_gateway_error(self, catalog):
        gateway = MagicMock()
        gateway.list_nodes.side_effect = GatewayError("list nodes failed: 401 Unauthorized", status=401)

        with pytest.raises(GatewayError) as exc_info:
            DeleteExecutor(gateway, catalog).run(DeleteStep(ObjectKind.NODE, "worker", 1))

        assert not isinstance(exc_info.value, NotFoundError)
        gateway.delete_node.assert_not_called()

    def test_delete_failure_aborts_remainder(self, catalog):
        gateway = MagicMock()
        gateway.list_pods.return_value = [make_pod("a"), make_pod("b"), make_pod("c")]
        gateway.delete_pod.side_effect = [None, GatewayError("delete pod b failed"), None]

        with pytest.raises(GatewayError, match="delete pod b"):
            DeleteExecutor(gateway, catalog, namespace="ns").run(DeleteStep(ObjectKind.POD, "worker", 3))

        assert [c.args for c in gateway.delete_pod.call_args_list] == [("ns", "a"), ("ns", "b")]
