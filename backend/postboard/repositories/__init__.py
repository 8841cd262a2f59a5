"""
Postboard Backend - Repository Layer
====================================

What:  Query composition and persistence for each aggregate.
How:   Repositories are stateless; every method receives the request's
       AsyncSession. They flush but never commit: the transaction belongs to
       the caller (request dependency or CLI).

Repository Inventory:
    - PostRepository: filtered pagination, lookups, mutations, tag association sync
    - TagRepository:  race-safe get-or-create by normalized name
    - UserRepository: count, lookups and inserts for accounts
"""
