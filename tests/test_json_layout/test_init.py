"""Test module for json_layout package initialization."""


def test_package_has_version() -> None:
    """Test that the package has a version attribute."""
    # Arrange & Act
    import json_layout

    # Assert
    assert json_layout.__version__ == "0.1.0"
    assert json_layout.__author__ == "JSON Layout Team"


def test_package_all_exports() -> None:
    """Test that every name in __all__ is importable from the package."""
    # Arrange & Act
    import json_layout

    # Assert
    for name in json_layout.__all__:
        assert hasattr(json_layout, name), name


def test_top_level_round_trip() -> None:
    """Test the level-one API from the package root."""
    # Arrange
    from json_layout import Rect, load_layout

    # Act
    layout, result = load_layout('{"id": "root"}')

    # Assert
    with layout:
        assert result.success
        assert layout.find_by_id("root").frame == Rect(0, 0, 144, 168)
