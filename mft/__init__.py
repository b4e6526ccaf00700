"""MFT (My Favorite Things): favourite-page change tracker."""
