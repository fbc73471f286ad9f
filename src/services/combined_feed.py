"""Combined blog feed of a site and, on hubs, of every project"""

import hashlib
import logging
from datetime import datetime, timezone

from src.models.document import Document
from src.models.site import Site
from src.services.item_index import is_project_index

logger = logging.getLogger(__name__)

# Posts without a date sort last
_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


class CombinedFeedBuilder:
    """Merge posts from all sources into one date-descending feed"""

    def generate(self, site: Site) -> list[Document]:
        """
        Build and publish posts_combined, num_posts_combined and projects_by_name

        Args:
            site: Site with its collections read

        Returns:
            The combined posts, most recent first
        """
        site_posts = list(site.posts.docs)
        projects_by_name: dict[str, Document] = {}

        if site.is_hub:
            projects_by_name = self._projects_by_name(site)
            project_posts = self._project_posts(site)
            for post in project_posts:
                project_name = post.url_path.segments[1]
                if project_name in projects_by_name:
                    post.parent_project = project_name
                else:
                    logger.warning(f"Post {post.id} has no matching project {project_name}")
            posts_combined = project_posts + site_posts
        else:
            posts_combined = site_posts

        # sorted() is stable; equal dates keep their relative order
        posts_combined = sorted(posts_combined, key=lambda p: p.date or _UNDATED, reverse=True)

        for post in posts_combined:
            self._hash_author_email(post)

        site.publish("posts_combined", posts_combined)
        site.publish("num_posts_combined", len(posts_combined))
        site.publish("projects_by_name", projects_by_name)

        logger.info(f"Combined feed: {len(posts_combined)} post(s)")
        return posts_combined

    def _projects_by_name(self, site: Site) -> dict[str, Document]:
        """Project index documents keyed by directory name (may differ from title)"""
        projects = site.collections.get("projects")
        if projects is None:
            return {}

        by_name = {}
        for doc in projects.docs:
            if is_project_index(doc.url_path):
                name = doc.url_path.segments[1]
                doc.merge_data({"name": name})
                by_name[name] = doc
        return by_name

    def _project_posts(self, site: Site) -> list[Document]:
        projects = site.collections.get("projects")
        if projects is None:
            return []
        return [doc for doc in projects.docs if doc.url_path.contains("_posts")]

    def _hash_author_email(self, post: Document) -> None:
        """Replace the author's email with its MD5 digest for Gravatar lookups"""
        author = post.data.get("author")
        if not isinstance(author, dict) or not author.get("email"):
            return
        if "plaintext_email" in author:
            # Already hashed by an earlier generate()
            return

        email = str(author["email"])
        author["plaintext_email"] = email
        author["email"] = hashlib.md5(email.encode("utf-8")).hexdigest()
