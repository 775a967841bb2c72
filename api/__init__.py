"""HTTP surface of the interview tracker."""
