"""
Tests for the role hierarchy.
"""

from django.test import SimpleTestCase

from access.roles import (
    RoleLevel,
    has_minimum_role,
    is_exact_role,
    is_staff_level,
    parse_role,
    role_label,
)


class RoleHierarchyTests(SimpleTestCase):
    """Test role ordering and helpers."""

    def test_levels_are_strictly_ordered(self):
        """Test every role tier sits strictly above the previous one."""
        levels = [role.value for role in RoleLevel]
        self.assertEqual(levels, sorted(levels))
        self.assertEqual(len(levels), len(set(levels)))

    def test_has_minimum_role_matches_integer_comparison(self):
        """Test 'at least X' is level >= X for every pair of tiers."""
        for actor in RoleLevel:
            for required in RoleLevel:
                self.assertEqual(
                    has_minimum_role(actor, required),
                    actor.value >= required.value,
                )

    def test_has_minimum_role_with_missing_level(self):
        """Test an actor without a level never qualifies."""
        self.assertFalse(has_minimum_role(None, RoleLevel.CUSTOMER))

    def test_custom_level_between_tiers(self):
        """Test a level inside a gap is ordered like any other integer."""
        self.assertTrue(has_minimum_role(1500, RoleLevel.SALES_REP))
        self.assertFalse(
            has_minimum_role(1500, RoleLevel.FULFILLMENT_COORDINATOR)
        )

    def test_is_exact_role(self):
        """Test exact-role check rejects higher tiers."""
        self.assertTrue(
            is_exact_role(2000, RoleLevel.FULFILLMENT_COORDINATOR)
        )
        self.assertFalse(
            is_exact_role(
                RoleLevel.SALES_MANAGER, RoleLevel.FULFILLMENT_COORDINATOR
            )
        )

    def test_is_staff_level(self):
        """Test staff starts at the sales representative tier."""
        self.assertFalse(is_staff_level(RoleLevel.CUSTOMER))
        self.assertTrue(is_staff_level(RoleLevel.SALES_REP))
        self.assertTrue(is_staff_level(RoleLevel.SUPER_ADMIN))

    def test_role_label(self):
        """Test display labels for known, custom and missing levels."""
        self.assertEqual(role_label(5000), "Administrator")
        self.assertEqual(role_label(1234), "Role 1234")
        self.assertEqual(role_label(None), "Unknown")

    def test_parse_role(self):
        """Test roles parse from ints, digit strings and names."""
        self.assertEqual(parse_role(4000), 4000)
        self.assertEqual(parse_role("1000"), 1000)
        self.assertEqual(parse_role("sales_rep"), RoleLevel.SALES_REP)
        self.assertEqual(parse_role("SalesManager"), RoleLevel.SALES_MANAGER)
        self.assertEqual(parse_role("nonsense"), RoleLevel.CUSTOMER)

    def test_parse_role_rejects_other_types(self):
        """Test booleans and other types are refused."""
        with self.assertRaises(TypeError):
            parse_role(True)
        with self.assertRaises(TypeError):
            parse_role(3.5)
