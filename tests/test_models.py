import time

import pytest

from post import Post
from user import User, UserRole, IncorrectPassword


@pytest.fixture(scope='module')
def alice():
    return User.new('alice', 'secret')


def test_password_is_hashed(alice):
    assert alice.password_hash != 'secret'
    assert alice.check_password('secret')
    assert not alice.check_password('Secret')


def test_new_user_defaults(alice):
    assert alice.role is UserRole.STANDARD
    assert not alice.is_admin
    assert alice.verified is False
    assert alice.bio == ''


def test_get_id_is_string():
    user = User(name='bob', password_hash='x', id=12)
    assert user.get_id() == '12'


def test_admin_role():
    user = User(name='root', password_hash='x', role=UserRole.ADMIN)
    assert user.is_admin


def test_change_password():
    user = User.new('carol', 'old')

    user.change_password('old', 'new')

    assert user.check_password('new')
    assert not user.check_password('old')


def test_change_password_wrong_current():
    user = User.new('dave', 'old')
    original = user.password_hash

    with pytest.raises(IncorrectPassword, match='incorrect password'):
        user.change_password('wrong', 'new')
    assert user.password_hash == original


def test_post_new_stamps_author_and_time():
    author = User(name='erin', password_hash='x', id=4)
    before = int(time.time())

    post = Post.new(author, 'hi')

    assert post.author_id == 4
    assert post.contents == 'hi'
    assert isinstance(post.timestamp, int)
    assert before <= post.timestamp <= int(time.time())
