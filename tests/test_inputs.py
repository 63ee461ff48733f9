import numpy as np
import pytest

from sarfit import SARData, fit_model


def test_table_is_sorted_by_area_and_read_only():
    data = SARData.from_table([[10.0, 4.0], [1.0, 2.0], [5.0, 3.0], [5.0, 7.0]])

    assert data.n == 4
    np.testing.assert_array_equal(data.area, [1.0, 5.0, 5.0, 10.0])
    # Stable sort keeps duplicate areas in input order
    np.testing.assert_array_equal(data.richness, [2.0, 3.0, 7.0, 4.0])
    with pytest.raises(ValueError):
        data.area[0] = 3.0


def test_from_table_picks_up_column_labels():
    class Frame:
        columns = ("island_area", "species")

        def __array__(self, dtype=None, copy=None):
            return np.array([[1.0, 2.0], [3.0, 5.0]], dtype=dtype)

    data = SARData.from_table(Frame())
    assert data.area_label == "island_area"
    assert data.richness_label == "species"


def test_meta_is_a_read_only_copy():
    source = {"archipelago": "Azores"}
    data = SARData.from_arrays([1.0, 2.0], [3.0, 4.0], meta=source)
    source["archipelago"] = "Canaries"

    assert data.meta["archipelago"] == "Azores"
    with pytest.raises(TypeError):
        data.meta["archipelago"] = "Madeira"


def test_non_table_input_is_type_error():
    with pytest.raises(TypeError, match="two-column table"):
        SARData.from_table(5)
    with pytest.raises(TypeError, match="two-column table"):
        SARData.from_table([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])


def test_non_numeric_values_are_type_error():
    with pytest.raises(TypeError, match="numeric"):
        SARData.from_table([["a", "b"], ["c", "d"]])


def test_nan_values_are_rejected():
    with pytest.raises(ValueError, match="NaNs present in data"):
        SARData.from_table([[1.0, 2.0], [np.nan, 3.0]])


@pytest.mark.parametrize(
    "table",
    [
        [[1.0, 2.0]],
        [[0.0, 2.0], [1.0, 3.0]],
        [[-1.0, 2.0], [1.0, 3.0]],
        [[1.0, -2.0], [2.0, 3.0]],
        [[1.0, np.inf], [2.0, 3.0]],
    ],
)
def test_invalid_values_are_value_error(table):
    with pytest.raises(ValueError):
        SARData.from_table(table)


def test_invalid_data_fails_before_fitting():
    with pytest.raises(TypeError, match="two-column table"):
        fit_model(np.arange(5.0), "power")


def test_total_sum_of_squares_and_identical_flag():
    data = SARData.from_arrays([1.0, 2.0, 3.0], [2.0, 4.0, 6.0])
    assert data.tss == pytest.approx(8.0)
    assert not data.identical_richness

    flat = SARData.from_arrays([1.0, 2.0, 3.0], [5.0, 5.0, 5.0])
    assert flat.tss == 0.0
    assert flat.identical_richness
