import pytest

from fshistory.errors import ProgramExit, exit_or_restart


@pytest.mark.parametrize("status", [0, 1, 255])
def test_exit_or_restart_raises_with_status(status):
    with pytest.raises(ProgramExit) as info:
        exit_or_restart(status)
    assert info.value.status == status


def test_program_exit_message_names_status():
    err = ProgramExit(7)
    assert "7" in str(err)
    assert err.status == 7