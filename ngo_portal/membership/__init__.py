"""
NGO Portal - Organization Membership

Public membership applications, the admin-maintained application form,
and the review step that turns an approved application into a member account.
"""
