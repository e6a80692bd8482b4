# Services package.
#
#   article_service  - ownership-checked article CRUD, pagination and the
#                      per-user recently-viewed list
#   auth_service     - registration and login (password hashing, tokens)
#
# Services are classes built per request by ``app.dependencies`` around
# the record stores in ``app.stores``; they flush through the stores and
# leave the commit to the ``get_db`` dependency.
