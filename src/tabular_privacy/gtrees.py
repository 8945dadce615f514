"""
Classes and functions to represent and use generalization trees.

A generalization tree (gtree) is a hierarchy of category labels: raw values
are leaves, and every ancestor is a coarser category containing its
descendants, up to the root ``*``. Generalizing a value to a level of the tree
replaces it with its ancestor at that depth. Gtrees can be saved to and
loaded from JSON configuration files.
"""

import json
import tempfile
from collections import deque
from typing import Any, Optional

from treelib import (
    Node,  # type: ignore[reportPrivateImportUsage]  # Node is publicly exported from treelib
    Tree,  # type: ignore[reportPrivateImportUsage]  # Tree is publicly exported from treelib
)

from tabular_privacy.constants import GTREE_ROOT_TAG
from tabular_privacy.errors import ConfigurationError


class GTree(Tree):
    """
    Generalization tree for hierarchical categorical generalization.

    This class extends treelib.Tree with value-based lookups. Node values are
    stored as node tags and must be hashable.

    Attributes
    ----------
    value_to_highest_node_nid : dict
        Maps values to the highest node ID holding that value
    """

    def __init__(
        self,
        tree: Optional["GTree"] = None,
        json_obj: Optional[dict[str, Any]] = None,
        identifier: Optional[str] = None,
        deep: bool = True,
    ) -> None:
        """
        Initialize a generalization tree.

        Parameters
        ----------
        tree : GTree, optional
            An existing GTree to copy, by default None
        json_obj : Dict[str, Any], optional
            A JSON object representation of a GTree to load, by default None
        identifier : str, optional
            A string identifier for the tree, by default None
        deep : bool, optional
            Whether to perform a deep copy when copying from an existing tree, by default True
        """
        super().__init__(tree=tree, deep=deep, identifier=identifier)
        assert not (tree is not None and json_obj is not None)
        self.value_to_highest_node_nid: dict[Any, str] = {}
        if tree is not None:
            self.value_to_highest_node_nid = dict(tree.value_to_highest_node_nid)
        elif json_obj is not None:
            self.from_config_json(json_obj)

    def pprint(self) -> str:
        """Return a pretty (multi-line) string representation of the tree."""
        result = self.show(stdout=False)
        return str(result) if result is not None else ""

    def create_node(  # type: ignore[override]
        self,
        value: Any,
        parent: Optional[Node] = None,
        identifier: Optional[str] = None,
    ) -> Node:  # pylint: disable=arguments-differ,arguments-renamed
        """
        Create a new node in the generalization tree.

        Parameters
        ----------
        value : Any
            Value of the node. Leaves hold raw values found in the input
            table; inner nodes hold category labels.
        parent : Node, optional
            Parent node to which this node will be attached, by default None
        identifier : str, optional
            Unique identifier for the node, by default None

        Returns
        -------
        Node
            The newly created Node object
        """
        self.value_to_highest_node_nid = {}
        return super().create_node(tag=value, identifier=identifier, parent=parent)

    def remove_node(self, identifier: str) -> int:  # type: ignore[override]
        self.value_to_highest_node_nid = {}
        return super().remove_node(identifier)

    def get_value(self, node: Node) -> Any:
        """Get the value stored in a node (its tag)."""
        return node.tag

    def update_highest_node_with_value_if(self) -> bool:
        """
        Build the value to highest node mapping if it is not already built.

        Returns
        -------
        bool
            True if the mapping was updated, False if it was already populated
        """
        if not self.value_to_highest_node_nid:
            queue = deque([self.root] if self.root is not None else [])
            while queue:
                nid = queue.popleft()
                node = self.get_node(nid)
                assert node is not None
                node_value = self.get_value(node)
                if node_value not in self.value_to_highest_node_nid:
                    self.value_to_highest_node_nid[node_value] = node.identifier
                # bfs, so the first node seen with a value is the highest
                queue.extend([child.identifier for child in self.children(nid)])
            return True
        return False

    def get_highest_node_with_value(self, value: Any) -> Optional[Node]:
        """
        Get the highest node (closest to the root) holding ``value``.

        Returns
        -------
        Node or None
            The node, or None if no node holds the value
        """
        self.update_highest_node_with_value_if()
        try:
            nid = self.value_to_highest_node_nid.get(value, None)
        except TypeError:
            # unhashable values are never in the tree
            return None
        return self.get_node(nid) if nid is not None else None

    def leaf_values(self) -> list[Any]:
        return [self.get_value(leaf) for leaf in self.leaves()]

    def values_at_depth(self, level: int) -> set[Any]:
        """Values of the nodes at depth ``level``, the root being at depth 0."""
        return {self.get_value(node) for node in self.all_nodes_itr() if self.depth(node) == level}

    def generalize_value(self, value: Any, level: int) -> Any:
        """
        Generalize a value to its ancestor at depth ``level``.

        Values that already sit at depth ``level`` or above are returned
        unchanged.

        Parameters
        ----------
        value : Any
            Value to generalize.
        level : int
            Target depth, where 0 is the root.

        Returns
        -------
        Any
            The value of the ancestor at depth ``level``.

        Raises
        ------
        KeyError
            If no node in the tree holds ``value``.
        """
        node = self.get_highest_node_with_value(value)
        if node is None:
            raise KeyError(value)
        depth = self.depth(node)
        if depth <= level:
            return value
        for nid in self.rsearch(node.identifier):
            if self.depth(nid) == level:
                ancestor = self.get_node(nid)
                assert ancestor is not None
                return self.get_value(ancestor)
        raise AssertionError(f"No ancestor of {value!r} at depth {level}")

    def validate(self) -> None:
        """
        Check that the tree can be used as a total generalization rule.

        Raises
        ------
        ConfigurationError
            If the tree is empty or a leaf value occurs more than once, which
            would make its generalization ambiguous.
        """
        if self.root is None:
            raise ConfigurationError("Generalization tree is empty")
        seen: set[Any] = set()
        for value in self.leaf_values():
            if value in seen:
                raise ConfigurationError(
                    "Generalization tree has a duplicate leaf value", value=value
                )
            seen.add(value)

    def to_config_json(self) -> dict[str, Any]:
        """
        Convert the tree to a JSON serializable dictionary.

        Returns
        -------
        Dict[str, Any]
            ``{"root_nid": ..., "nodes": {nid: [value, parent_nid, children_nids]}}``
        """
        json_obj: dict[str, Any] = {"root_nid": self.root, "nodes": {}}
        for node in self.all_nodes_itr():
            parent = self.parent(node.identifier)
            children_ids = [child.identifier for child in self.children(node.identifier)]
            json_obj["nodes"][node.identifier] = [
                self.get_value(node),
                parent.identifier if parent is not None else None,
                children_ids,
            ]
        return json_obj

    def from_config_json(self, json_obj: dict[str, Any]) -> None:
        """
        Load the tree structure from a dictionary created by to_config_json().

        Parameters
        ----------
        json_obj : Dict[str, Any]
            Dictionary containing the GTree representation

        Raises
        ------
        ConfigurationError
            If the dictionary is malformed.
        """
        try:
            nodes = dict(json_obj["nodes"])
            queue = deque([json_obj["root_nid"]] if nodes else [])
            while queue:
                nid = queue.pop()
                value, parent_nid, children = nodes.pop(nid)
                self.create_node(
                    value,
                    identifier=nid,
                    parent=self.get_node(parent_nid) if parent_nid is not None else None,
                )
                queue.extend(children)
        except (KeyError, TypeError, ValueError) as err:
            raise ConfigurationError(f"Malformed generalization tree config: {err}") from err
        if nodes:
            raise ConfigurationError(
                f"Generalization tree config has unreachable nodes {sorted(nodes)}"
            )

    @classmethod
    def from_nested(cls, nested: dict[str, Any]) -> "GTree":
        """
        Build a tree from a nested mapping of categories.

        Each key is a category label whose value is either a nested mapping of
        sub-categories or a list of leaf values. The root ``*`` is added.

        Examples
        --------
        >>> gtree = GTree.from_nested({"Respiratory": ["Asthma", "Flu"], "Other": ["Diabetes"]})
        >>> gtree.generalize_value("Flu", 1)
        'Respiratory'
        """
        gtree = cls()
        root = gtree.create_node(GTREE_ROOT_TAG)
        queue: deque = deque([(root, nested)])
        while queue:
            parent, children = queue.popleft()
            if isinstance(children, dict):
                for value, grandchildren in children.items():
                    node = gtree.create_node(value, parent=parent)
                    queue.append((node, grandchildren))
            else:
                for value in children:
                    gtree.create_node(value, parent=parent)
        return gtree


def make_flat_default_gtree(uniq_values: set[Any]) -> GTree:
    """
    Create a two-level generalization tree.

    The root ``*`` has every value of ``uniq_values`` as a direct child, so
    generalizing to level 0 maps every value to ``*``.

    Parameters
    ----------
    uniq_values : Set[Any]
        Set of unique values to include as leaves in the tree

    Returns
    -------
    GTree
        A new generalization tree with a flat structure
    """
    gtree = GTree()
    root = gtree.create_node(GTREE_ROOT_TAG)
    for value in sorted(uniq_values, key=str):
        gtree.create_node(value, parent=root)
    gtree.update_highest_node_with_value_if()
    return gtree


def load_from_config_file(filename: str) -> GTree:
    """
    Load a generalization tree from a JSON file written by generate_config_file.
    """
    with open(filename) as config_file:
        json_obj = json.load(config_file)
    return GTree(json_obj=json_obj)


def generate_config_file(gtree: GTree, filename: Optional[str] = None) -> str:
    """
    Serialize a generalization tree to a JSON configuration file.

    Parameters
    ----------
    gtree : GTree
        The generalization tree to serialize
    filename : str, optional
        Path where the configuration should be written. If None, a temporary
        file will be created, by default None

    Returns
    -------
    str
        The path to the written configuration file
    """
    if filename is None:
        _, filename = tempfile.mkstemp(suffix=".json")
    with open(filename, "w") as config_file:
        json.dump(gtree.to_config_json(), config_file)
    return filename
