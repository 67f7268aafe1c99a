"""JSON web API for the loan tracker."""
