# Services package init
"""
Blog API — Services Layer
===========================

Service Inventory:
    - AuthService:      register / login
    - BlogService:      blog lifecycle, views, likes, search, related
    - CommentService:   comment/reply threads and cascading deletes
    - CategoryService:  category CRUD (admin mutations)
    - FileService:      image validation, storage and removal

Services receive an AsyncSession per call and never commit; the request
dependency owns the transaction. They are constructed once per process in
AppContext.build().
"""
