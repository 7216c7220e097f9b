from citypulse.core.enums import Severity
from citypulse.services.notifications import NotificationCenter


def test_ids_stay_unique_within_one_millisecond():
    center = NotificationCenter(clock=lambda: 1000)

    a = center.append("A", "first", Severity.info)
    b = center.append("B", "second", Severity.warning)

    assert a.id == 1000
    assert b.id == 1001
    assert [n.title for n in center.items] == ["A", "B"]


def test_dismiss_removes_only_that_notification():
    ticks = iter([10, 20, 30])
    center = NotificationCenter(clock=lambda: next(ticks))
    for title in ("one", "two", "three"):
        center.append(title, "", Severity.success)

    assert center.dismiss(20)
    assert [n.id for n in center.items] == [10, 30]
    assert not center.dismiss(20)
    assert len(center) == 2


def test_items_is_a_copy():
    center = NotificationCenter()
    center.append("x", "y")
    center.items.clear()
    assert len(center) == 1
