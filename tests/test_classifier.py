"""Tests for the RPC eligibility rules."""
from dataclasses import replace
from pathlib import Path

import pytest

from rpctocli.analysis.classifier import (
    RPCClassifier,
    Rejection,
    classify,
    is_rpc_method,
    resolve,
)
from rpctocli.models.records import BuiltinType, CompositeType, NamedType, PassingMode

from conftest import (
    ERROR,
    INT,
    alias,
    arith_types,
    defined,
    make_table,
    method,
    named,
    ptr,
    struct,
    val,
)

ARITH = named("Arith")
ARGS = named("Args")


def _table(*functions, extra_types=()):
    return make_table(arith_types() + list(extra_types), functions)


class TestScenarios:
    """The arithmetic service from the net/rpc documentation."""

    def test_value_receiver_with_value_args_is_accepted(self):
        decl = method("Test", val(ARITH, "t"), [val(ARGS, "args"), ptr(INT, "reply")])
        verdict = classify(decl, _table(decl))

        assert verdict.accepted
        assert verdict.rejection is None
        assert verdict.record.service == "Arith"
        assert verdict.record.name == "Test"

    def test_lowercase_method_is_rejected(self):
        decl = method("test8", ptr(ARITH), [ptr(ARGS), ptr(INT)])
        assert classify(decl, _table(decl)).rejection is Rejection.METHOD_NOT_EXPORTED

    def test_unexported_receiver_is_rejected(self):
        decl = method("Test7", val(named("arith")), [ptr(ARGS), ptr(INT)])
        assert classify(decl, _table(decl)).rejection is Rejection.RECEIVER_NOT_EXPORTED

    def test_non_error_result_is_rejected(self):
        decl = method("Test6", val(ARITH), [ptr(ARGS), ptr(INT)], results=[val(INT)])
        assert classify(decl, _table(decl)).rejection is Rejection.BAD_RESULT

    def test_reply_by_value_is_rejected(self):
        decl = method("Test3", val(ARITH), [ptr(ARGS), val(INT)])
        assert classify(decl, _table(decl)).rejection is Rejection.REPLY_NOT_POINTER

    def test_pointer_receiver_is_accepted(self):
        decl = method("Multiply", ptr(ARITH), [ptr(ARGS), ptr(INT)])
        verdict = classify(decl, _table(decl))

        assert verdict.accepted
        assert verdict.record.service == "Arith"
        assert verdict.record.args.mode is PassingMode.REFERENCE
        assert verdict.record.result == BuiltinType("error")


class TestPredicates:
    def test_free_function_is_never_accepted(self):
        decl = method("Multiply", None, [ptr(ARGS), ptr(INT)])
        assert classify(decl, _table(decl)).rejection is Rejection.NOT_A_METHOD

    def test_two_results_are_rejected(self):
        decl = method("Test5", val(ARITH), [ptr(ARGS), ptr(INT)], results=[val(INT), ERROR])
        assert classify(decl, _table(decl)).rejection is Rejection.BAD_RESULT

    def test_no_result_is_rejected(self):
        decl = method("Nothing", val(ARITH), [ptr(ARGS), ptr(INT)], results=[])
        assert classify(decl, _table(decl)).rejection is Rejection.BAD_RESULT

    def test_reply_of_unexported_type_is_rejected(self):
        decl = method("Test4", val(ARITH), [ptr(ARGS), ptr(named("unexp"))])
        assert classify(decl, _table(decl)).rejection is Rejection.REPLY_NOT_EXPORTED

    def test_args_of_unexported_type_is_rejected(self):
        decl = method("Hidden", val(ARITH), [ptr(named("unexp")), ptr(INT)])
        assert classify(decl, _table(decl)).rejection is Rejection.ARGS_NOT_EXPORTED

    @pytest.mark.parametrize("count", [0, 1, 3])
    def test_param_count_other_than_two_is_rejected(self, count):
        params = [ptr(INT)] * count
        decl = method("Test2", val(ARITH), params)
        assert classify(decl, _table(decl)).rejection is Rejection.WRONG_PARAM_COUNT

    def test_builtin_args_are_accepted(self):
        decl = method("Squared", ptr(ARITH), [val(INT, "nr"), ptr(INT, "reply")])
        assert is_rpc_method(decl, _table(decl))

    def test_exported_defined_type_args_are_accepted(self):
        types = [defined("Countable", val(INT)), defined("TwoAble", val(named("Countable")))]
        decl = method("TimesTwo", ptr(ARITH), [val(named("TwoAble")), ptr(INT)])
        assert is_rpc_method(decl, _table(decl, extra_types=types))

    def test_qualified_types_follow_the_export_rule(self):
        exported = method("At", ptr(ARITH), [val(NamedType("Time", "time")), ptr(INT)])
        hidden = method("Raw", ptr(ARITH), [val(NamedType("rawConn", "net")), ptr(INT)])
        table = _table(exported, hidden)

        assert is_rpc_method(exported, table)
        assert classify(hidden, table).rejection is Rejection.ARGS_NOT_EXPORTED

    def test_slices_and_maps_of_eligible_types_are_accepted(self):
        ints = CompositeType("slice", (INT,), "[]int")
        index = CompositeType("map", (BuiltinType("string"), ARGS), "map[string]Args")
        decl = method("Sum", ptr(ARITH), [val(ints), ptr(index)])
        assert is_rpc_method(decl, _table(decl))

    def test_composite_of_unexported_element_is_rejected(self):
        hidden = CompositeType("slice", (named("unexp"),), "[]unexp")
        decl = method("Sum", ptr(ARITH), [val(hidden), ptr(INT)])
        assert classify(decl, _table(decl)).rejection is Rejection.ARGS_NOT_EXPORTED

    def test_func_and_chan_literals_are_rejected(self):
        callback = CompositeType("func", (), "func()")
        decl = method("Call", ptr(ARITH), [val(callback), ptr(INT)])
        assert classify(decl, _table(decl)).rejection is Rejection.ARGS_NOT_EXPORTED

    def test_variadic_reply_is_rejected(self):
        reply = replace(ptr(INT, "reply"), variadic=True)
        decl = method("Many", ptr(ARITH), [ptr(ARGS), reply])
        assert classify(decl, _table(decl)).rejection is Rejection.REPLY_NOT_POINTER

    def test_checks_stop_at_first_failure(self):
        # every rule after the first is violated too
        decl = method("lower", None, [val(INT)], results=[])
        assert classify(decl, _table(decl)).rejection is Rejection.NOT_A_METHOD

    def test_record_carries_declaration_details(self):
        decl = method(
            "Divide",
            ptr(ARITH, "t"),
            [ptr(ARGS, "args"), ptr(named("Quotient"), "quo")],
            line=42,
            file_path=Path("server.go"),
        )
        record = classify(decl, _table(decl)).record

        assert record.qualified_name == "Arith.Divide"
        assert record.reply.name == "quo"
        assert record.file_path == Path("server.go")
        assert record.line == 42
        assert record.signature() == "func (t *Arith) Divide(args *Args, quo *Quotient) error"


class TestResolution:
    def test_unknown_receiver_is_unresolved(self):
        decl = method("Lost", ptr(named("Ghost")), [ptr(ARGS), ptr(INT)])
        verdict = classify(decl, _table(decl))

        assert verdict.rejection is Rejection.UNRESOLVED_TYPE
        assert "Ghost" in verdict.detail

    def test_unknown_reply_type_is_unresolved(self):
        decl = method("Lost", ptr(ARITH), [ptr(ARGS), ptr(named("Missing"))])
        assert classify(decl, _table(decl)).rejection is Rejection.UNRESOLVED_TYPE

    def test_alias_cycle_is_unresolved(self):
        types = [alias("Loop", val(named("Again"))), alias("Again", val(named("Loop")))]
        decl = method("Spin", ptr(ARITH), [val(named("Loop")), ptr(INT)])
        assert classify(decl, _table(decl, extra_types=types)).rejection is Rejection.UNRESOLVED_TYPE

    def test_exported_alias_of_unexported_type_is_rejected(self):
        types = [alias("Public", val(named("unexp")))]
        decl = method("Peek", ptr(ARITH), [val(named("Public")), ptr(INT)])
        verdict = classify(decl, _table(decl, extra_types=types))
        assert verdict.rejection is Rejection.ARGS_NOT_EXPORTED

    def test_alias_of_pointer_counts_as_reference(self):
        types = [alias("IntPtr", ptr(INT))]
        decl = method("Fill", ptr(ARITH), [ptr(ARGS), val(named("IntPtr"))])
        assert is_rpc_method(decl, _table(decl, extra_types=types))

    def test_receiver_alias_resolves_to_target_service(self):
        types = [alias("Calc", val(ARITH))]
        decl = method("Add", ptr(named("Calc")), [ptr(ARGS), ptr(INT)])
        verdict = classify(decl, _table(decl, extra_types=types))
        assert verdict.record.service == "Arith"

    def test_resolve_stops_at_defined_types(self):
        table = make_table([defined("Countable", val(INT))], [])
        assert resolve(named("Countable"), table) == named("Countable")

    def test_shadowed_error_type_is_rejected(self):
        types = [struct("error")]
        decl = method("Fails", ptr(ARITH), [ptr(ARGS), ptr(INT)], results=[val(named("error"))])
        assert classify(decl, _table(decl, extra_types=types)).rejection is Rejection.BAD_RESULT

    def test_custom_error_type_name(self):
        classifier = RPCClassifier(error_type="Status")
        decl = method("Ping", ptr(ARITH), [ptr(ARGS), ptr(INT)], results=[val(named("Status"))])
        table = _table(decl, extra_types=[struct("Status")])

        assert classifier.accepts(decl, table)
        assert not is_rpc_method(decl, table)
        assert classifier.classify(
            replace(decl, results=(ERROR,)), table
        ).rejection is Rejection.BAD_RESULT

    def test_custom_error_type_follows_aliases_and_packages(self):
        classifier = RPCClassifier(error_type="Status")
        decl = method("Ping", ptr(ARITH), [ptr(ARGS), ptr(INT)], results=[val(named("Result"))])
        table = _table(decl, extra_types=[struct("Status"), alias("Result", val(named("Status")))])
        assert classifier.accepts(decl, table)

        qualified = RPCClassifier(error_type="rpcerr.Status")
        remote = replace(decl, results=(val(NamedType("Status", package="rpcerr")),))
        assert qualified.accepts(remote, table)
        assert not qualified.accepts(decl, table)
