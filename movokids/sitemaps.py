from django.contrib.sitemaps import Sitemap
from django.urls import reverse

from .models import Blog


class StaticPagesSitemap(Sitemap):
    changefreq = 'weekly'
    priority = 0.8

    def items(self):
        return ['home', 'pricing', 'blog_list', 'quiz']

    def location(self, item):
        return reverse(item)


class BlogSitemap(Sitemap):
    changefreq = 'monthly'
    priority = 0.6

    def items(self):
        return Blog.objects.order_by('-created_at')

    def lastmod(self, blog):
        return blog.updated_at


sitemaps = {
    'static': StaticPagesSitemap,
    'blogs': BlogSitemap,
}
