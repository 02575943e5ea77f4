"""
Public blog: cached reads, back-office writes and image uploads.

Posts are read far more than they are written, so single posts and listing
pages sit in the cache. Any save or delete drops them (see the receivers
at the bottom).
"""
import logging
import os
import time
import uuid

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.core.files.storage import default_storage
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Q
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Blog

logger = logging.getLogger(__name__)

BLOG_CACHE_TIMEOUT = 3600
LISTING_VERSION_KEY = 'blogs:listing-version'
MAX_IMAGE_SIZE = 10 * 1024 * 1024
UPLOAD_DIR = 'blogs'

EDITABLE_FIELDS = ('slug', 'title', 'description', 'content', 'thumbnail_url')


def _slug_key(slug):
    return f'blogs:slug:{slug}'


def _listing_version():
    version = cache.get(LISTING_VERSION_KEY)
    if version is None:
        version = 1
        cache.set(LISTING_VERSION_KEY, version, None)
    return version


# ================================
# READS
# ================================

def get_blog_slugs():
    return list(Blog.objects.order_by('-created_at').values_list('slug', flat=True))


def get_blog_by_slug(slug):
    key = _slug_key(slug)
    blog = cache.get(key)
    if blog is None:
        blog = Blog.objects.filter(slug=slug).first()
        if blog is not None:
            cache.set(key, blog, BLOG_CACHE_TIMEOUT)
    return blog


def get_blogs(offset=0, limit=10, search=''):
    """
    One page of posts, newest first. `offset` is a page index, not a row index.
    Returns {'rows', 'rows_count', 'error'}.
    """
    offset = max(int(offset or 0), 0)
    limit = max(int(limit or 10), 1)
    search = (search or '').strip()

    key = f'blogs:list:v{_listing_version()}:{offset}:{limit}:{search.lower()}'
    cached = cache.get(key)
    if cached is not None:
        return cached

    blogs = Blog.objects.all()
    if search:
        blogs = blogs.filter(Q(title__icontains=search) | Q(description__icontains=search))
    blogs = blogs.order_by('-created_at')

    try:
        start = offset * limit
        result = {
            'rows': list(blogs[start:start + limit]),
            'rows_count': blogs.count(),
            'error': None,
        }
    except DatabaseError:
        logger.exception("Failed to load blogs")
        return {'rows': [], 'rows_count': 0, 'error': 'Failed to get blogs'}

    cache.set(key, result, BLOG_CACHE_TIMEOUT)
    return result


# ================================
# WRITES
# ================================

def create_blog(slug, title, content, description='', thumbnail_url=''):
    try:
        with transaction.atomic():
            blog = Blog.objects.create(
                slug=slug,
                title=title,
                content=content,
                description=description or '',
                thumbnail_url=thumbnail_url or '',
            )
    except IntegrityError:
        raise ValidationError("Slug already exists")
    logger.info("Blog %s created", blog.slug)
    return blog


def update_blog(blog, **changes):
    old_slug = blog.slug
    for field, value in changes.items():
        if field in EDITABLE_FIELDS and value is not None:
            setattr(blog, field, value)
    try:
        with transaction.atomic():
            blog.save()
    except IntegrityError:
        raise ValidationError("Slug already exists")

    if old_slug != blog.slug:
        cache.delete(_slug_key(old_slug))
    return blog


def delete_blog(blog):
    slug = blog.slug
    blog.delete()
    logger.info("Blog %s deleted", slug)


def revalidate_blogs(slug=None):
    """Forget cached posts: the given one, and every listing page."""
    if slug:
        cache.delete(_slug_key(slug))
    try:
        cache.incr(LISTING_VERSION_KEY)
    except ValueError:
        # Key evicted or never set
        cache.set(LISTING_VERSION_KEY, 2, None)


@receiver(post_save, sender=Blog)
@receiver(post_delete, sender=Blog)
def blog_changed(sender, instance, **kwargs):
    revalidate_blogs(instance.slug)


# ================================
# IMAGES
# ================================

def upload_blog_image(uploaded_file):
    """
    Store an editor image under blogs/ with a unique name.
    Returns {'url', 'path'}.
    """
    if uploaded_file is None:
        raise ValidationError("No file provided")

    content_type = getattr(uploaded_file, 'content_type', '') or ''
    if not content_type.startswith('image/'):
        raise ValidationError("File must be an image")
    if uploaded_file.size > MAX_IMAGE_SIZE:
        raise ValidationError(f"File size must be less than {MAX_IMAGE_SIZE // (1024 * 1024)}MB")

    extension = os.path.splitext(uploaded_file.name)[1].lstrip('.').lower() or 'bin'
    name = f"blog_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}.{extension}"
    path = default_storage.save(f"{UPLOAD_DIR}/{name}", uploaded_file)
    logger.info("Uploaded blog image %s", path)
    return {'url': default_storage.url(path), 'path': path}
