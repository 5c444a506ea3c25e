# This is a package to make it easy to load the wgsl files as package data.
