"""
Blog post content store.

Posts are markdown files with a YAML front matter block. The store only
reads existing posts; the external generator does the rendering.
"""

import os
import re
import json
import logging
from datetime import datetime, date, timezone

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')

DATE_FORMATS = ['%Y-%m-%d %H:%M:%S', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%d', '%b %d, %Y']


class FrontMatterError(ValueError):
    """Raised when a post's front matter block cannot be used."""


def parse_date(value):
    """Parse a front matter date into a datetime, or None."""
    if isinstance(value, datetime):
        # Offsets are folded into naive UTC so posts sort together
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(value.strip(), fmt)
            except ValueError:
                continue
    return None


def _as_list(value):
    """Hexo allows a single value or a (possibly nested) list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = []
        for item in value:
            items.extend(_as_list(item))
        return items
    return [str(value)]


def slugify(title):
    slug = re.sub(r'[\W_]+', '-', title.lower()).strip('-')
    return slug or 'untitled'


def has_front_matter(text):
    """True when the first line is exactly the '---' opener."""
    lines = text.splitlines()
    return bool(lines) and lines[0].strip() == '---'


def quoted(value):
    """Double-quoted YAML scalar that keeps non-ASCII text readable."""
    return json.dumps(str(value), ensure_ascii=False)


def split_front_matter(text):
    """
    Split a post into its front matter mapping and body.

    Returns (metadata, body). A file that does not open with '---' has no
    front matter; the whole text is the body.

    Raises:
        FrontMatterError: the block is unterminated, invalid YAML, or not a mapping
    """
    if not has_front_matter(text):
        return {}, text.strip()
    lines = text.splitlines(keepends=True)

    for index in range(1, len(lines)):
        if lines[index].strip() == '---':
            break
    else:
        raise FrontMatterError("Unterminated front matter block")

    raw = ''.join(lines[1:index])
    try:
        metadata = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise FrontMatterError(f"Invalid YAML front matter: {e}")
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise FrontMatterError("Front matter must be a mapping")

    return metadata, ''.join(lines[index + 1:]).strip()


class Post:
    """A single blog post read from the content store."""

    def __init__(self, title, date=None, categories=None, tags=None, body='', path=None, metadata=None):
        self.title = title
        self.date = date
        self.categories = list(categories or [])
        self.tags = set(tags or [])
        self.body = body
        self.path = path
        self.metadata = metadata or {}

    @classmethod
    def from_metadata(cls, metadata, body, path=None):
        title = metadata.get('title')
        return cls(
            title=str(title) if title is not None else 'Untitled',
            date=parse_date(metadata.get('date')),
            categories=_as_list(metadata.get('categories')),
            tags=_as_list(metadata.get('tags')),
            body=body,
            path=path,
            metadata=metadata,
        )

    @property
    def slug(self):
        if self.path:
            return os.path.splitext(os.path.basename(self.path))[0]
        return slugify(self.title)

    def __repr__(self):
        return f"Post(title={self.title!r}, date={self.date!r})"


class ContentStore:
    """Reads, checks and scaffolds posts under a source directory."""

    def __init__(self, source_dir):
        self.source_dir = source_dir
        self.logger = logging.getLogger('ContentStore')
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters['quoted'] = quoted

    def get_markdown_files(self):
        """Get all markdown files under the source directory, sorted."""
        markdown_files = []
        if os.path.isdir(self.source_dir):
            for root, _dirs, files in os.walk(self.source_dir):
                for file in files:
                    if file.endswith('.md'):
                        markdown_files.append(os.path.join(root, file))
        return sorted(markdown_files)

    def parse_markdown_with_metadata(self, filepath):
        """
        Parse a markdown file with YAML front matter.

        Raises:
            FrontMatterError: the front matter cannot be parsed
            OSError: the file cannot be read
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        return split_front_matter(content)

    def load_posts(self):
        """Load every parsable post, newest first; undated posts last."""
        posts = []
        for filepath in self.get_markdown_files():
            try:
                metadata, body = self.parse_markdown_with_metadata(filepath)
            except (OSError, FrontMatterError) as e:
                self.logger.error(f"Skipping {filepath}: {e}")
                continue
            posts.append(Post.from_metadata(metadata, body, path=filepath))

        dated = sorted((p for p in posts if p.date), key=lambda p: p.date, reverse=True)
        undated = [p for p in posts if not p.date]
        return dated + undated

    def check(self):
        """Return a list of (path, message) problems found in the posts."""
        problems = []
        for filepath in self.get_markdown_files():
            try:
                with open(filepath, 'r', encoding='utf-8') as f:
                    text = f.read()
                metadata, _body = split_front_matter(text)
                if not has_front_matter(text):
                    problems.append((filepath, "missing front matter block"))
                    continue
            except (OSError, FrontMatterError) as e:
                problems.append((filepath, str(e)))
                continue

            if not metadata.get('title'):
                problems.append((filepath, "missing title"))
            if 'date' not in metadata or metadata['date'] is None:
                problems.append((filepath, "missing date"))
            elif parse_date(metadata['date']) is None:
                problems.append((filepath, f"unparsable date: {metadata['date']!r}"))

        for filepath, message in problems:
            self.logger.debug(f"{filepath}: {message}")
        return problems

    def new_post(self, title, categories=None, tags=None, now=None):
        """
        Scaffold a new post from templates/post.md.

        Returns:
            Path of the created file

        Raises:
            FileExistsError: a post with the same slug already exists
        """
        os.makedirs(self.source_dir, exist_ok=True)
        post_path = os.path.join(self.source_dir, f"{slugify(title)}.md")
        if os.path.exists(post_path):
            raise FileExistsError(f"Post already exists: {post_path}")

        now = now or datetime.now()
        rendered = self.env.get_template('post.md').render(
            title=title,
            date=now.strftime('%Y-%m-%d %H:%M:%S'),
            categories=list(categories or []),
            tags=list(tags or []),
        )

        with open(post_path, 'x', encoding='utf-8') as f:
            f.write(rendered)
        self.logger.info(f"Created post: {post_path}")
        return post_path
