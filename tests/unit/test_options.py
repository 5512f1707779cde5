from recruitdesk.core.options import (
    CALL_DURATION_OPTIONS,
    JOINED_STATUS,
    LINEUP_STATUS_OPTIONS,
    is_others,
    processes_for_company,
)


def test_others_sentinel_is_case_insensitive() -> None:
    assert is_others("others")
    assert is_others(" Others ")
    assert not is_others("Other")
    assert not is_others(None)


def test_processes_follow_company_catalog() -> None:
    processes = [option.value for option in processes_for_company("Taskus")]
    assert processes == ["Delivroo", "Doordash", "Frontier", "Tinder", "Vivint"]
    assert processes_for_company("taskus") == processes_for_company("Taskus")
    assert processes_for_company("") == ()
    assert processes_for_company("Unknown Co") == ()


def test_lineup_status_catalog_contains_joined() -> None:
    assert JOINED_STATUS in {option.value for option in LINEUP_STATUS_OPTIONS}


def test_call_duration_labels() -> None:
    assert CALL_DURATION_OPTIONS[0].label == "1 Minute"
    assert CALL_DURATION_OPTIONS[-1].value == "30"
    assert CALL_DURATION_OPTIONS[-1].label == "30 Minutes"
