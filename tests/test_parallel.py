import math

import pytest

from conclave.parallel import apply_function


def test_single_thread_double_values():
    data = [1, 2, 3, 4, 5]
    apply_function(data, lambda x: x * 2, 1)
    assert data == [2, 4, 6, 8, 10]


def test_multiple_threads_double_values():
    data = [1, 2, 3, 4, 5, 6, 7, 8]
    apply_function(data, lambda x: x * 2, 4)
    assert data == [2, 4, 6, 8, 10, 12, 14, 16]


def test_more_threads_than_elements():
    data = [10, 20, 30]
    apply_function(data, lambda x: x + 1, 100)
    assert data == [11, 21, 31]


def test_empty_vector():
    data = []
    apply_function(data, lambda x: x * 2, 4)
    assert data == []


def test_single_element():
    data = [42]
    apply_function(data, lambda x: x * x, 3)
    assert data == [1764]


def test_string_type():
    data = ["hello", "world", "foo"]
    apply_function(data, lambda s: s + "!", 2)
    assert data == ["hello!", "world!", "foo!"]


def test_large_vector_correctness():
    n = 100000
    data = list(range(n))
    apply_function(data, lambda x: x * x, 8)
    assert len(data) == n
    assert data[0] == 0
    assert data[1] == 1
    assert data[-1] == (n - 1) ** 2
    assert data == sorted(data)


def test_default_thread_count():
    data = [1, 2, 3]
    apply_function(data, lambda x: x + 10)
    assert data == [11, 12, 13]


def test_double_type():
    data = [1.0, 4.0, 9.0, 16.0]
    apply_function(data, math.sqrt, 2)
    assert data == pytest.approx([1.0, 2.0, 3.0, 4.0])


def test_uneven_split():
    data = [1, 2, 3, 4, 5, 6, 7]
    apply_function(data, lambda x: x * 3, 4)
    assert data == [3, 6, 9, 12, 15, 18, 21]


@pytest.mark.parametrize("threads", [1, 2, 3, 5, 7, 13])
def test_every_element_transformed_exactly_once(threads):
    data = list(range(13))
    apply_function(data, lambda x: x + 100, threads)
    assert data == list(range(100, 113))


def test_zero_threads_runs_inline():
    data = [1, 2]
    apply_function(data, lambda x: -x, 0)
    assert data == [-1, -2]