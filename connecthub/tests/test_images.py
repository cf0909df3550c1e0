import pytest

from connecthub.images import get_image_url, is_valid_image_path

BASE = 'http://cdn.test/uploads'


def test_relative_path_is_joined_to_base():
    assert get_image_url('posts/a.jpg', BASE) == 'http://cdn.test/uploads/posts/a.jpg'
    assert get_image_url('posts/a.jpg', BASE + '/') == 'http://cdn.test/uploads/posts/a.jpg'


def test_separators_and_leading_slash_are_normalized():
    assert get_image_url('\\posts\\a.jpg', BASE) == 'http://cdn.test/uploads/posts/a.jpg'
    assert get_image_url('/profile_pictures/u.jpg', BASE) == 'http://cdn.test/uploads/profile_pictures/u.jpg'


@pytest.mark.parametrize('path', [None, '', '   ', 'posts/undefined.jpg', 'null', 'posts/NaN'])
def test_unusable_paths_give_none(path):
    assert get_image_url(path, BASE) is None


@pytest.mark.parametrize('base', ['uploads', 'ftp://cdn.test/uploads', 'http://'])
def test_non_http_base_gives_none(base):
    assert get_image_url('posts/a.jpg', base) is None


def test_default_base_url():
    assert get_image_url('posts/a.jpg') == 'http://localhost:8000/uploads/posts/a.jpg'
    assert is_valid_image_path('posts/a.jpg')
    assert not is_valid_image_path('')
