from pytest import mark

from live_state import *

VALUES = [
    None,
    1,
    "text",
    {},
    [],
    {"count": 1},
    {"items": {"a": 1, "b": {"x": [1, 2, {"y": True}]}}},
]


@mark.parametrize("value", VALUES)
def test_identical(value):
    assert diff(value, value) == []


def test_change():
    records = diff({"count": 1}, {"count": 2})

    assert records == [DiffRecord(("count",), ChangeKind.CHANGE, 2)]
    assert records[0].path_key == "/count"


def test_remove():
    records = diff({"items": {"a": 1}}, {"items": {}})

    assert records == [DiffRecord(("items", "a"), ChangeKind.REMOVE)]
    assert records[0].value is None


def test_create():
    records = diff({"items": {"a": 1}}, {"items": {"a": 1, "b": {"x": 1}}})

    # new subtree reported as a whole
    assert records == [DiffRecord(("items", "b"), ChangeKind.CREATE, {"x": 1})]


def test_order():
    previous = {"a": 1, "b": {"x": 1, "y": 2}, "c": 3}
    next = {"d": 4, "c": 30, "b": {"y": 2, "z": 3}}

    records = diff(previous, next)

    # keys of previous depth-first, then new keys at each level
    assert records == [
        DiffRecord(("a",), ChangeKind.REMOVE),
        DiffRecord(("b", "x"), ChangeKind.REMOVE),
        DiffRecord(("b", "z"), ChangeKind.CREATE, 3),
        DiffRecord(("c",), ChangeKind.CHANGE, 30),
        DiffRecord(("d",), ChangeKind.CREATE, 4),
    ]

    # deterministic
    assert diff(previous, next) == records


def test_shape_change():
    assert diff({"a": {"x": 1}}, {"a": 1}) == [
        DiffRecord(("a",), ChangeKind.CHANGE, 1)
    ]
    assert diff({"a": 1}, {"a": {"x": 1}}) == [
        DiffRecord(("a",), ChangeKind.CHANGE, {"x": 1})
    ]


def test_type_change():
    assert diff({"a": 1}, {"a": True}) == [
        DiffRecord(("a",), ChangeKind.CHANGE, True)
    ]
    assert diff({"a": 1}, {"a": 1.5}) == [
        DiffRecord(("a",), ChangeKind.CHANGE, 1.5)
    ]


def test_list():
    records = diff({"tags": ["x", "y"]}, {"tags": ["x", "z", "w"]})

    assert records == [
        DiffRecord(("tags", 1), ChangeKind.CHANGE, "z"),
        DiffRecord(("tags", 2), ChangeKind.CREATE, "w"),
    ]
    assert records[0].path_key == "/tags/1"

    # list compared against its stored form, keyed by index
    assert diff({"tags": {"0": "x", "1": "y"}}, {"tags": ["x", "y"]}) == []


def test_root():
    assert diff(UNKNOWN, {"a": 1}) == [
        DiffRecord((), ChangeKind.CREATE, {"a": 1})
    ]
    assert diff(None, 1) == [DiffRecord((), ChangeKind.CREATE, 1)]
    assert diff(1, None) == [DiffRecord((), ChangeKind.REMOVE)]
    assert diff(1, 2) == [DiffRecord((), ChangeKind.CHANGE, 2)]
    assert diff(UNKNOWN, UNKNOWN) == []
    assert diff(UNKNOWN, None) == []
