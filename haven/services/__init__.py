# Services package.
#
# Each module exposes async functions holding the business logic and
# database access for one aggregate:
#
#   user_service      — registration, lookups, serialisation for User
#   auth_service      — sessions, login/logout, verification, reset, social
#   article_service   — create / read / update / archive for Article
#   tag_service       — tag parsing rules and get-or-create
#   category_service  — category lookup with default fallback
#   reaction_service  — likes / dislikes and their counters
#   comment_service   — append-only comments
#
# All service functions take an AsyncSession first so the router layer
# owns the transaction boundary via the ``get_db`` dependency.  Domain
# failures are raised as ``haven.errors.ApiError`` subclasses.
