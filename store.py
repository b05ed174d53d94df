"""In-memory user and post store.

``MemStore`` does no locking of its own. Callers go through a ``StoreHandle``,
which holds one lock around the store for a whole logical operation
(read, modify, write back).
"""
import threading
from dataclasses import replace


class StoreError(Exception):
    pass


class DuplicateName(StoreError):
    pass


class NotFound(StoreError):
    pass


class MemStore:
    """Users and posts kept in lists, with separate monotonic id counters.

    Every record handed in or out is copied, so callers never share state with
    the store.
    """

    def __init__(self):
        self._next_user_id = 0
        self._next_post_id = 0
        self._users = []
        self._posts = []

    # Users

    def count_users(self):
        return len(self._users)

    def add_user(self, user):
        if any(u.name == user.name for u in self._users):
            raise DuplicateName(f"user with name {user.name} already exists")

        user = replace(user, id=self._next_user_id)
        self._next_user_id += 1
        self._users.append(user)
        return replace(user)

    def update_user(self, user):
        idx = self._user_index(lambda u: u.name == user.name,
                               f"user with name {user.name} not found")
        # The id is fixed at creation; keep the stored one.
        self._users[idx] = replace(user, id=self._users[idx].id)

    def get_user_by_id(self, user_id):
        idx = self._user_index(lambda u: u.id == user_id,
                               f"user with id {user_id} not found")
        return replace(self._users[idx])

    def get_user_by_name(self, name):
        idx = self._user_index(lambda u: u.name == name,
                               f"user with name {name} not found")
        return replace(self._users[idx])

    def list_users(self):
        return [replace(u) for u in self._users]

    def _user_index(self, match, message):
        for idx, user in enumerate(self._users):
            if match(user):
                return idx
        raise NotFound(message)

    # Posts

    def count_posts(self):
        return len(self._posts)

    def add_post(self, post):
        post = replace(post, id=self._next_post_id)
        self._next_post_id += 1
        self._posts.append(post)
        return replace(post)

    def update_post(self, post):
        idx = self._post_index(post.id)
        self._posts[idx] = replace(post)

    def list_posts(self):
        return [replace(p) for p in self._posts]

    def delete_post_by_id(self, post_id):
        # Swap-remove: the last post takes the freed slot, order is not kept.
        idx = self._post_index(post_id)
        last = self._posts.pop()
        if idx < len(self._posts):
            self._posts[idx] = last

    def _post_index(self, post_id):
        for idx, post in enumerate(self._posts):
            if post.id == post_id:
                return idx
        raise NotFound(f"post with id {post_id} not found")


class StoreHandle:
    """Owns a ``MemStore`` and the lock every caller must hold to use it."""

    def __init__(self, store=None):
        self.store = store if store is not None else MemStore()
        self._lock = threading.Lock()

    def acquire(self):
        self._lock.acquire()
        return self.store

    def release(self):
        self._lock.release()

    def __enter__(self):
        return self.acquire()

    def __exit__(self, exc_type, exc, tb):
        self.release()
