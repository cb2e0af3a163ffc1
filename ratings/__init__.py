"""ratings/ -- Ratings owned by principals: model, repository and validation.

Layer rule: ratings/ imports from core/ and auth/, never from api/.
"""
