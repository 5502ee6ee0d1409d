# nodb_board/render.py
from html import escape
from typing import Iterable

from nodb_board.models import Post

ACCEPTED_EXTENSIONS = ".jpg,.jpeg,.png,.gif,.webp"

PAGE = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<meta name="viewport" content="width=device-width, initial-scale=1">
</head>
<body>
<h1>{title}</h1>
<form name="post" enctype="multipart/form-data" action="/post" method="post" style="margin-bottom:20px;">
    <input type="text" name="name" placeholder="Name" required style="display:block;margin-bottom:10px;">
    <input type="text" name="subject" placeholder="Subject" required style="display:block;margin-bottom:10px;">
    <textarea name="body" rows="5" cols="35" placeholder="Comment" required style="display:block;width:300px;height:100px;margin-bottom:10px;"></textarea>
    <input type="file" name="file" accept="{accept}" style="display:block;margin-bottom:10px;">
    <input type="submit" value="Post">
</form>
<hr>
{posts}
</body>
</html>"""

THREAD = """<div class="thread" id="thread_{id}">
<div class="post op" id="op_{id}">
<p class="intro"><span class="subject">{subject}</span> <span class="name">{name}</span></p>
<div class="body">{body}</div>
{image}
<hr>
</div>
</div>
"""

IMAGE = '<div class="image"><img src="{src}" alt="image" style="max-width:200px;"></div>'


def _e(value: str) -> str:
    return escape(value, quote=True)


def render_post(post: Post) -> str:
    image = IMAGE.format(src=_e(post.image_url)) if post.image_url else ""
    return THREAD.format(
        id=post.id,
        subject=_e(post.subject),
        name=_e(post.name),
        body=_e(post.body),
        image=image,
    )


def render_board(posts: Iterable[Post], title: str) -> str:
    """Full page: submission form followed by `posts` in the order given"""
    return PAGE.format(
        title=_e(title),
        accept=ACCEPTED_EXTENSIONS,
        posts="".join(render_post(p) for p in posts),
    )
