"""
sitedeploy - deployment orchestration for static-site blogs
Creates hosting projects, triggers builds and manages custom domains on
GitHub Pages, Vercel, Netlify and Cloudflare Pages
"""

__version__ = "0.1.0"
