"""
Client-side view state with optimistic updates.

Each toggle applies its change locally first, then calls the API, and on
failure applies the inverse change. There is no debouncing or cancellation:
when gestures overlap, whichever response arrives last decides the state.
"""

import logging
from typing import Any, Dict, List, Optional

from src.client.api import ApiRequestError, SocialApiClient


class LikeToggle:
    """Like button state for one post."""

    def __init__(self, api: SocialApiClient, post_id: str, liked: bool = False, like_count: int = 0):
        self.api = api
        self.post_id = post_id
        self.liked = liked
        self.like_count = like_count
        self.last_error: Optional[ApiRequestError] = None

    def toggle(self) -> bool:
        """Flip the like. Returns True if the server accepted (or already agreed)."""
        previous_liked, previous_count = self.liked, self.like_count
        self.liked = not previous_liked
        self.like_count = previous_count - 1 if previous_liked else previous_count + 1
        self.last_error = None

        try:
            if previous_liked:
                self.api.unlike(self.post_id)
            else:
                self.api.like(self.post_id)
        except ApiRequestError as e:
            if not previous_liked and e.is_conflict:
                # Already liked on the server: the optimistic state was right
                self.liked = True
                return True
            logging.warning(f"Like toggle for {self.post_id} failed, rolling back: {e}")
            self.liked, self.like_count = previous_liked, previous_count
            self.last_error = e
            return False
        return True

    def like_on_double_tap(self) -> bool:
        """Double tap only ever likes."""
        if self.liked:
            return True
        return self.toggle()


class FollowToggle:
    """Follow button state on a profile."""

    def __init__(self, api: SocialApiClient, user_id: str, following: bool = False,
                 stats: Optional[Dict[str, int]] = None):
        self.api = api
        self.user_id = user_id
        self.following = following
        self.stats = stats or {"posts": 0, "followers": 0, "following": 0}
        self.last_error: Optional[ApiRequestError] = None

    def toggle(self) -> bool:
        previous_following = self.following
        self.following = not previous_following
        self.last_error = None

        try:
            if previous_following:
                self.api.unfollow(self.user_id)
            else:
                self.api.follow(self.user_id)
        except ApiRequestError as e:
            logging.warning(f"Follow toggle for {self.user_id} failed, rolling back: {e}")
            self.following = previous_following
            self.last_error = e
            return False

        self.refresh()
        return True

    def refresh(self) -> None:
        """Reload follow status and counts from the profile endpoint."""
        try:
            profile = self.api.get_user(self.user_id)
        except ApiRequestError as e:
            # The mutation went through; keep the optimistic state
            logging.warning(f"Profile refresh for {self.user_id} failed: {e}")
            return
        self.following = bool(profile.get("isFollowing", False))
        self.stats = profile.get("stats", self.stats)


class FeedPager:
    """Infinite-scroll feed: pages are requested when the bottom sentinel shows."""

    def __init__(self, api: SocialApiClient, page_size: int = 10, user_id: Optional[str] = None):
        self.api = api
        self.page_size = page_size
        self.user_id = user_id
        self.refresh_key: Any = None
        self.reset()

    def reset(self) -> None:
        self.posts: List[dict] = []
        self.page = 0  # last page loaded
        self.has_more = True
        self.loading = False
        self.last_error: Optional[ApiRequestError] = None

    def sync_refresh(self, refresh_key: Any) -> bool:
        """Start over from page 1 when the external refresh signal changes."""
        if refresh_key == self.refresh_key and self.page > 0:
            return False
        self.refresh_key = refresh_key
        self.reset()
        self.load_next()
        return True

    def load_next(self) -> List[dict]:
        if self.loading or not self.has_more:
            return []
        self.loading = True
        try:
            data = self.api.get_posts(page=self.page + 1, limit=self.page_size, user_id=self.user_id)
        except ApiRequestError as e:
            logging.warning(f"Loading feed page {self.page + 1} failed: {e}")
            self.last_error = e
            return []
        finally:
            self.loading = False

        new_posts = data.get("posts", [])
        self.posts.extend(new_posts)
        self.page += 1
        self.has_more = bool(data.get("hasMore", False))
        self.last_error = None
        return new_posts

    def on_sentinel_visible(self) -> List[dict]:
        """Called when the scroll sentinel intersects the viewport."""
        if not self.has_more or self.loading:
            return []
        return self.load_next()
