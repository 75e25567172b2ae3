import inspect

import main


def test_entry_point_builds_the_shell():
    source = inspect.getsource(main)
    assert "sys.path" not in source
    assert callable(main.main)
