# Routes package init
"""
Blog API — Route Handlers
===========================

Route Inventory (API routes under API_PREFIX, default /api/v1):
    - auth.py:        POST /register, POST /login
    - blogs.py:       /blogs, /blogs/mine, /blogs/search, /blogs/{id},
                      /blogs/{id}/related, /publish, /image, /like, /unlike
    - comments.py:    /blogs/{id}/comments, /comments/{id}/replies,
                      DELETE /comments/{id}
    - categories.py:  /categories, /categories/{id}
    - files.py:       GET /api/files/{path}   (not versioned)
    - health.py:      GET /health             (not versioned)

Routes are thin: parse the request, await the principal dependency, call
one service method, return its result.
"""
