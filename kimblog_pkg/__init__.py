"""
Kimblog - rebuild and publish a Hexo-style blog.

Kimblog runs the blog's static site generator, copies the generated site
into the web server's document root and reloads the server. It also reads,
checks and scaffolds the markdown posts the site is built from.
"""

__version__ = "1.0.0"

from .core import Deployer, DeployReport, StepResult
from .content import ContentStore, Post

__all__ = ['Deployer', 'DeployReport', 'StepResult', 'ContentStore', 'Post']
