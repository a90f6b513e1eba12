# Services package.
#
#   post_service  PostService: post lifecycle, likes and comments over the
#                 versioned document store
#   user_service  CRUD for User, the profile records posts snapshot from
#
# PostService is built per request by ``postfeed.dependencies`` from the
# Database handle on ``app.state``; user_service functions take an
# AsyncSession so the router owns the transaction via ``get_db``.
